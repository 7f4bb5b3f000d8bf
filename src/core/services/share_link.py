"""Extracción del ID de archivo desde enlaces compartidos de Google Drive."""

from __future__ import annotations

import re

from core.domain.errors import InvalidShareLink


_DELIMITERS = re.compile(r"[/=?&]")


def resolve_file_id(url: str) -> str:
    """Devuelve el ID de archivo incluido en una URL compartida.

    Soporta la forma de ruta (`.../file/d/<ID>/view?usp=sharing`) y la de query
    (`.../open?id=<ID>`). Se parte en tokens por `/`, `=`, `?` y `&` y se recorren
    de izquierda a derecha; gana el primer `d` seguido de un token no vacío, o el
    primer `id`.
    """

    tokens = _DELIMITERS.split((url or "").strip())
    for index, token in enumerate(tokens):
        following = tokens[index + 1] if index + 1 < len(tokens) else ""
        if token == "d" and following:
            return following
        if token == "id":
            if not following:
                break
            return following
    raise InvalidShareLink(
        "Could not extract a file ID from the sharing URL.",
        detail=f"URL was: '{url}'",
    )
