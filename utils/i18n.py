"""
Модуль: `utils/i18n.py`.
Назначение: Выбор языка интерфейса (cookie, затем Accept-Language, затем язык по умолчанию).
"""

from __future__ import annotations

from flask import Request


def normalize_language(value: str | None, supported_languages: tuple[str, ...]) -> str | None:
    """Код языка из значения вида 'ja', 'EN', 'ja-JP' или None, если язык не поддерживается."""
    if not value:
        return None
    code = value.strip().lower().replace("_", "-").split("-", 1)[0]
    return code if code in supported_languages else None


def resolve_request_language(
    request: Request,
    supported_languages: tuple[str, ...],
    cookie_name: str,
    default_language: str,
) -> str:
    chosen = normalize_language(request.cookies.get(cookie_name), supported_languages)
    if chosen:
        return chosen

    chosen = request.accept_languages.best_match(supported_languages)
    if chosen:
        return chosen

    return normalize_language(default_language, supported_languages) or supported_languages[0]
