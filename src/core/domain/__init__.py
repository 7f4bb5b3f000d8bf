"""Modelos y errores de dominio.

Por qué aquí:
- Estructuras de datos simples y estrictas (Pydantic v2) que describen un despliegue.
- El dominio no sabe nada de subprocesos, HTTP ni de la CLI.
"""
