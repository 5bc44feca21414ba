"""
Модуль: `utils/validators.py`.
Назначение: Нормализация email и проверка полей форм регистрации и профиля.
"""

import re

from flask import current_app


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MAX_PASSWORD_LENGTH = 128


def normalize_email(value: str | None) -> str:
    """Возвращает email в нижнем регистре или пустую строку, если формат неверный."""
    if not value:
        return ""
    email = value.strip().lower()
    if not EMAIL_RE.match(email):
        return ""
    return email


def validate_username(username: str) -> str | None:
    if not username:
        return "ユーザー名を入力してください。"
    if len(username) > 80:
        return "ユーザー名は80文字以内で入力してください。"
    if username != username.strip():
        return "ユーザー名の前後に空白は使用できません。"
    return None


def validate_new_password(password: str, confirm_password: str) -> str | None:
    """Проверяет новый пароль и его подтверждение, возвращает текст ошибки или None."""
    if not password or not confirm_password:
        return "すべての項目を入力してください。"
    if password != confirm_password:
        return "パスワードが一致しません。"
    min_length = int(current_app.config.get("MIN_PASSWORD_LENGTH", 6))
    if len(password) < min_length:
        return f"パスワードは{min_length}文字以上で入力してください。"
    if len(password) > MAX_PASSWORD_LENGTH:
        return f"パスワードは{MAX_PASSWORD_LENGTH}文字以内で入力してください。"
    return None
