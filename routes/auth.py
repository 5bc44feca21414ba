"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: routes/auth.py – маршруты аутентификации.

Назначение модуля:
- Регистрация с подтверждением email, вход с возвратом на исходную страницу, выход.
- Подтверждение ссылок из писем (регистрация и восстановление пароля).
- Восстановление пароля и смена пароля авторизованным пользователем.
"""

from flask import current_app, flash, make_response, redirect, render_template, request, url_for
from flask_login import login_required

from utils.rate_limit import (
    PASSWORD_RECOVERY,
    SIGNIN_PER_EMAIL,
    SIGNIN_PER_IP,
    SIGNUP,
    is_rate_limited,
    retry_after_seconds,
)
from utils.route_guard import safe_redirect_target
from utils.session import (
    AuthError,
    confirm_token,
    current_identity,
    recovery_identity,
    request_password_reset,
    sign_in,
    sign_out,
    sign_up,
    start_recovery_session,
    update_password,
    verify_password,
)
from utils.validators import normalize_email, validate_new_password, validate_username


def _too_many_attempts(target: str, retry_after: int):
    response = make_response(render_template("auth/signin.html", redirect_target=target), 429)
    if retry_after:
        response.headers["Retry-After"] = str(retry_after)
    return response


def register_routes(app):
    @app.route("/auth/signup", methods=["GET", "POST"])
    def auth_signup():
        if request.method == "POST":
            if is_rate_limited(SIGNUP):
                flash("登録の試行回数が多すぎます。しばらくしてからお試しください。", "error")
                return redirect(url_for("auth_signup"))

            username = (request.form.get("username") or "").strip()
            email = normalize_email(request.form.get("email"))
            password = request.form.get("password") or ""
            confirm_password = request.form.get("confirm_password") or ""

            if not username or not request.form.get("email") or not password:
                flash("すべての項目を入力してください。", "error")
                return render_template("auth/signup.html"), 400

            if not email:
                flash("正しいメールアドレスを入力してください。", "error")
                return render_template("auth/signup.html"), 400

            error = validate_username(username) or validate_new_password(password, confirm_password)
            if error:
                flash(error, "error")
                return render_template("auth/signup.html"), 400

            try:
                _user, token = sign_up(email, password, username)
            except AuthError as e:
                flash(str(e), "error")
                return render_template("auth/signup.html"), 400

            if token is None:
                flash("登録が完了しました。ログインしてください。", "success")
            else:
                flash("確認メールを送信しました。メール内のリンクから登録を完了してください。", "success")
                if current_app.debug:
                    flash(f"Dev-ссылка: {url_for('auth_confirm', token_hash=token, type='signup')}", "info")
            return redirect(url_for("auth_signin"))

        return render_template("auth/signup.html")

    @app.route("/auth/signin", methods=["GET", "POST"])
    def auth_signin():
        target = safe_redirect_target(request.args.get("redirect") or request.form.get("redirect"))

        if current_identity() is not None and request.method == "GET":
            return redirect(target)

        if request.method == "POST":
            email = normalize_email(request.form.get("email"))
            password = request.form.get("password") or ""

            if is_rate_limited(SIGNIN_PER_IP):
                flash("ログインの試行回数が多すぎます。しばらくしてからお試しください。", "error")
                return _too_many_attempts(target, retry_after_seconds(SIGNIN_PER_IP))

            email_key = email or "anonymous"
            if is_rate_limited(SIGNIN_PER_EMAIL, identity=email_key):
                flash("このアカウントへのログイン試行が多すぎます。しばらくしてからお試しください。", "error")
                return _too_many_attempts(target, retry_after_seconds(SIGNIN_PER_EMAIL, identity=email_key))

            if not email or not password:
                flash("メールアドレスとパスワードを入力してください。", "error")
                return render_template("auth/signin.html", redirect_target=target), 400

            try:
                sign_in(email, password, remember=bool(request.form.get("remember")))
            except AuthError as e:
                flash(str(e), "error")
                return render_template("auth/signin.html", redirect_target=target), 401

            return redirect(target)

        return render_template("auth/signin.html", redirect_target=target)

    @app.post("/auth/signout")
    def auth_signout():
        sign_out()
        flash("ログアウトしました。", "success")
        return redirect(url_for("index"))

    @app.get("/auth/confirm")
    def auth_confirm():
        token = request.args.get("token_hash") or ""
        token_type = request.args.get("type") or ""

        try:
            identity = confirm_token(token, token_type)
        except AuthError as e:
            return render_template("auth/confirm.html", error_message=str(e)), 400

        if token_type == "recovery":
            start_recovery_session(identity)
            return redirect(url_for("auth_reset_password"))

        return render_template("auth/confirm.html", error_message=None)

    @app.get("/auth/callback")
    def auth_callback():
        # Ссылки старого формата ведут сюда; параметры те же, что у /auth/confirm
        return redirect(url_for("auth_confirm", **request.args))

    @app.route("/auth/forgot-password", methods=["GET", "POST"])
    def auth_forgot_password():
        if request.method == "POST":
            if is_rate_limited(PASSWORD_RECOVERY):
                flash("リクエストが多すぎます。しばらくしてからお試しください。", "error")
                return redirect(url_for("auth_forgot_password"))

            email = normalize_email(request.form.get("email"))
            if not email:
                flash("正しいメールアドレスを入力してください。", "error")
                return render_template("auth/forgot_password.html"), 400

            token = request_password_reset(email)
            if token and current_app.debug:
                flash(f"Dev-ссылка: {url_for('auth_confirm', token_hash=token, type='recovery')}", "info")

            # Не раскрываем, существует ли аккаунт с этим адресом
            flash("パスワード再設定用のメールを送信しました。メールをご確認ください。", "success")
            return redirect(url_for("auth_signin"))

        return render_template("auth/forgot_password.html")

    @app.route("/auth/reset-password", methods=["GET", "POST"])
    def auth_reset_password():
        identity = recovery_identity()
        if identity is None:
            flash(
                "無効または期限切れのパスワードリセットリンクです。もう一度パスワードリセットをリクエストしてください。",
                "error",
            )
            return redirect(url_for("auth_forgot_password"))

        if request.method == "POST":
            password = request.form.get("password") or ""
            confirm_password = request.form.get("confirm_password") or ""
            error = validate_new_password(password, confirm_password)
            if error:
                flash(error, "error")
                return render_template("auth/reset_password.html"), 400

            update_password(identity, password)
            flash("パスワードを変更しました。新しいパスワードでログインしてください。", "success")
            return redirect(url_for("auth_signin"))

        return render_template("auth/reset_password.html")

    @app.route("/auth/change-password", methods=["GET", "POST"])
    @login_required
    def auth_change_password():
        user = current_identity()
        if request.method == "POST":
            current_password = request.form.get("current_password") or ""
            new_password = request.form.get("new_password") or ""
            confirm_password = request.form.get("confirm_password") or ""

            if not current_password:
                flash("すべての項目を入力してください。", "error")
                return render_template("auth/change_password.html"), 400

            error = validate_new_password(new_password, confirm_password)
            if error:
                flash(error, "error")
                return render_template("auth/change_password.html"), 400

            if not verify_password(user, current_password):
                flash("現在のパスワードが正しくありません。", "error")
                return render_template("auth/change_password.html"), 400

            update_password(user.identity, new_password)
            flash("パスワードを変更しました。", "success")
            return redirect(url_for("profile"))

        return render_template("auth/change_password.html")
