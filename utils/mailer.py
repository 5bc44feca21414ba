"""
Модуль: `utils/mailer.py`.
Назначение: Доставка писем со ссылками подтверждения регистрации и восстановления пароля.
"""

import smtplib
import ssl
from email.message import EmailMessage

from flask import current_app

SUBJECTS = {
    "signup": "【Shodo】メールアドレスの確認",
    "recovery": "【Shodo】パスワード再設定のご案内",
}

BODIES = {
    "signup": (
        "Shodo へのご登録ありがとうございます。\n"
        "以下のリンクを開いてメールアドレスを確認してください。\n\n{link}\n\n"
        "お心当たりがない場合は、このメールを破棄してください。"
    ),
    "recovery": (
        "パスワード再設定のリクエストを受け付けました。\n"
        "以下のリンクから新しいパスワードを設定してください。\n\n{link}\n\n"
        "リンクの有効期限が切れた場合は、もう一度リクエストしてください。"
    ),
}


SMTP_TIMEOUT_SECONDS = 10


def build_message(email: str, purpose: str, link: str, sender: str) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = SUBJECTS.get(purpose, "Shodo")
    message["From"] = sender
    message["To"] = email
    message.set_content(BODIES.get(purpose, "{link}").format(link=link))
    return message


def _open_connection(config) -> smtplib.SMTP:
    host, port = config["SMTP_HOST"], int(config["SMTP_PORT"])
    tls_context = ssl.create_default_context()
    if config.get("SMTP_USE_SSL"):
        return smtplib.SMTP_SSL(host, port, timeout=SMTP_TIMEOUT_SECONDS, context=tls_context)

    connection = smtplib.SMTP(host, port, timeout=SMTP_TIMEOUT_SECONDS)
    if config.get("SMTP_USE_TLS", True):
        connection.starttls(context=tls_context)
    return connection


def send_auth_link(email: str, purpose: str, link: str) -> bool:
    """
    Отправляет письмо со ссылкой подтверждения или восстановления.

    Возвращает False, если SMTP не настроен или отправка не удалась; ошибка пишется в лог.
    """
    config = current_app.config
    if not config.get("SMTP_HOST") or not config.get("SMTP_FROM"):
        return False

    message = build_message(email, purpose, link, config["SMTP_FROM"])
    try:
        with _open_connection(config) as connection:
            if config.get("SMTP_USER"):
                connection.login(config["SMTP_USER"], config.get("SMTP_PASSWORD", ""))
            connection.send_message(message)
    except (smtplib.SMTPException, OSError):
        current_app.logger.exception("Не удалось отправить письмо (%s) на %s", purpose, email)
        return False
    return True
