"""
Модуль: `extensions.py`.
Назначение: Общие экземпляры Flask-расширений и канал изменений комментариев.

Экземпляры создаются без приложения и привязываются к нему в create_app().
"""

from flask_babel import Babel
from flask_cors import CORS
from flask_login import LoginManager
from flask_sqlalchemy import SQLAlchemy

from utils.change_feed import ChangeFeed

db = SQLAlchemy()
login_manager = LoginManager()
babel = Babel()
cors = CORS()
# Подписки живут в памяти процесса: SSE-клиенты получают события только от своего воркера
change_feed = ChangeFeed()
