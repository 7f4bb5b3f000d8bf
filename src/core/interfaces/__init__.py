"""Interfaces/abstracciones del Core.

Por qué:
- Define los contratos (Protocol) que implementan los adaptadores concretos.
- Invierte dependencias: los servicios dependen de abstracciones, así cada
  comando externo se puede sustituir por un fake en los tests.
"""
