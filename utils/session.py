"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: utils/session.py – доступ к текущей сессии и операции учётной записи.

Назначение модуля:
- Текущий пользователь, вход, регистрация с подтверждением email, выход.
- Одноразовые ссылки подтверждения и восстановления пароля.
- Каскадное удаление учётной записи: работы, лайки, комментарии, профиль, учётная запись.
"""

import hashlib
import secrets
from datetime import datetime, timedelta

from flask import current_app, session, url_for
from flask_login import current_user, login_user, logout_user
from werkzeug.security import check_password_hash, generate_password_hash

from extensions import change_feed, db, login_manager
from models import Artwork, AuthIdentity, AuthToken, Comment, Contact, Like, User
from utils.mailer import send_auth_link
from utils.storage import StorageError, get_storage

TOKEN_PURPOSES = ("signup", "recovery")
RECOVERY_SESSION_KEY = "recovery_identity_id"


class AuthError(Exception):
    """Ошибка аутентификации с сообщением, пригодным для показа пользователю."""


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


def current_identity() -> User | None:
    """Текущий профиль или None для анонимного посетителя."""
    if current_user and current_user.is_authenticated:
        return current_user._get_current_object()
    return None


def _hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def _issue_token(identity: AuthIdentity, purpose: str) -> str:
    now = datetime.utcnow()
    ttl = max(5, int(current_app.config.get("AUTH_TOKEN_TTL_MINUTES", 60)))

    # Предыдущие неиспользованные ссылки того же типа становятся недействительными
    AuthToken.query.filter(
        AuthToken.identity_id == identity.id,
        AuthToken.purpose == purpose,
        AuthToken.used_at.is_(None),
    ).update({AuthToken.used_at: now}, synchronize_session=False)

    raw_token = secrets.token_urlsafe(32)
    db.session.add(
        AuthToken(
            identity_id=identity.id,
            purpose=purpose,
            token_hash=_hash_token(raw_token),
            expires_at=now + timedelta(minutes=ttl),
        )
    )
    db.session.commit()
    return raw_token


def _deliver_token(identity: AuthIdentity, purpose: str, raw_token: str) -> bool:
    link = url_for("auth_confirm", token_hash=raw_token, type=purpose, _external=True)
    sent = send_auth_link(identity.email, purpose, link)
    if not sent:
        current_app.logger.warning("Ссылка (%s) не доставлена на %s", purpose, identity.email)
    return sent


def verify_password(user: User, password: str) -> bool:
    identity = user.identity
    return bool(identity and password and check_password_hash(identity.password_hash, password))


def sign_up(email: str, password: str, username: str) -> tuple[User, str | None]:
    """
    Создаёт учётную запись и зеркальный профиль.

    Возвращает профиль и токен подтверждения (None, если подтверждение отключено).
    """
    if AuthIdentity.query.filter_by(email=email).first():
        raise AuthError("このメールアドレスは既に登録されています。")

    require_confirmation = current_app.config.get("REQUIRE_EMAIL_CONFIRMATION", True)
    identity = AuthIdentity(
        email=email,
        password_hash=generate_password_hash(password, method="scrypt"),
        email_confirmed_at=None if require_confirmation else datetime.utcnow(),
    )
    db.session.add(identity)
    db.session.flush()

    user = User(id=identity.id, email=email, username=username)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Зарегистрирован пользователь id=%s", user.id)

    if not require_confirmation:
        return user, None

    raw_token = _issue_token(identity, "signup")
    _deliver_token(identity, "signup", raw_token)
    return user, raw_token


def confirm_token(raw_token: str, purpose: str) -> AuthIdentity:
    """Проверяет ссылку из письма и отмечает её использованной."""
    if not raw_token or purpose not in TOKEN_PURPOSES:
        raise AuthError("無効な確認リンクです。")

    token = AuthToken.query.filter_by(token_hash=_hash_token(raw_token), purpose=purpose).first()
    now = datetime.utcnow()
    if token is None or token.used_at is not None or token.expires_at <= now:
        raise AuthError("無効または期限切れのリンクです。もう一度お試しください。")

    token.used_at = now
    identity = token.identity
    if purpose == "signup" and identity.email_confirmed_at is None:
        identity.email_confirmed_at = now
    db.session.commit()
    return identity


def sign_in(email: str, password: str, remember: bool = False) -> User:
    identity = AuthIdentity.query.filter_by(email=email).first()
    if identity is None or not check_password_hash(identity.password_hash, password or ""):
        raise AuthError("ログインに失敗しました。メールアドレスとパスワードを確認してください。")

    if not identity.is_confirmed:
        raise AuthError("メールアドレスが確認されていません。確認メールのリンクを開いてください。")

    user = db.session.get(User, identity.id)
    if user is None:
        current_app.logger.error("Профиль отсутствует для учётной записи id=%s", identity.id)
        raise AuthError("ログインに失敗しました。")

    identity.last_sign_in_at = datetime.utcnow()
    db.session.commit()
    login_user(user, remember=remember)
    return user


def sign_out() -> None:
    session.pop(RECOVERY_SESSION_KEY, None)
    logout_user()


def request_password_reset(email: str) -> str | None:
    """Отправляет ссылку восстановления, если адрес известен. Возвращает токен для dev-режима."""
    identity = AuthIdentity.query.filter_by(email=email).first()
    if identity is None:
        return None
    raw_token = _issue_token(identity, "recovery")
    _deliver_token(identity, "recovery", raw_token)
    return raw_token


def start_recovery_session(identity: AuthIdentity) -> None:
    session[RECOVERY_SESSION_KEY] = identity.id


def recovery_identity() -> AuthIdentity | None:
    identity_id = session.get(RECOVERY_SESSION_KEY)
    if identity_id is None:
        return None
    return db.session.get(AuthIdentity, identity_id)


def update_password(identity: AuthIdentity, new_password: str) -> None:
    identity.password_hash = generate_password_hash(new_password, method="scrypt")
    db.session.commit()
    session.pop(RECOVERY_SESSION_KEY, None)


def delete_account(user: User) -> None:
    """
    Удаляет учётную запись пользователя со всеми данными.

    Порядок: работы (вместе с их лайками, комментариями и файлами), лайки и комментарии
    пользователя, профиль, учётная запись аутентификации. Требует SERVICE_ROLE_KEY.
    """
    if not current_app.config.get("SERVICE_ROLE_KEY"):
        raise AuthError("アカウント削除は現在利用できません。管理者にお問い合わせください。")

    user_id = user.id
    bucket = current_app.config["ARTWORK_BUCKET"]
    storage_paths = []
    touched_artworks = set()

    Like.query.filter_by(user_id=user_id).delete(synchronize_session=False)

    for comment in Comment.query.filter_by(user_id=user_id).all():
        touched_artworks.add(comment.artwork_id)
        db.session.delete(comment)
    db.session.flush()

    # Лайки и комментарии других пользователей к этим работам удаляются каскадом
    for artwork in Artwork.query.filter_by(user_id=user_id).all():
        if artwork.storage_path:
            storage_paths.append(artwork.storage_path)
        touched_artworks.discard(artwork.id)
        db.session.delete(artwork)

    Contact.query.filter_by(user_id=user_id).update({Contact.user_id: None}, synchronize_session=False)

    identity = user.identity
    db.session.delete(user)
    db.session.flush()
    if identity is not None:
        db.session.delete(identity)
    db.session.commit()
    current_app.logger.info("Удалена учётная запись id=%s", user_id)

    for artwork_id in touched_artworks:
        change_feed.publish(artwork_id, "DELETE", {"user_id": user_id})

    if storage_paths:
        try:
            get_storage().remove(bucket, storage_paths)
        except StorageError:
            current_app.logger.exception("Не удалось удалить файлы работ пользователя id=%s", user_id)

    sign_out()
