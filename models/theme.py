"""
Программа: «Shodo» – веб-приложение для публикации работ каллиграфии.
Модуль: models/theme.py – ежемесячная тема (お題).

Назначение модуля:
- Хранение темы, привязанной к паре (год, месяц).
- Уникальность пары не гарантируется: «текущей» считается последняя по (year, month) тема.
"""

from datetime import datetime

from extensions import db


class Theme(db.Model):
    """Класс `Theme` описывает тему месяца."""
    __tablename__ = "themes"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    artworks = db.relationship("Artwork", back_populates="theme", lazy="dynamic")

    __table_args__ = (
        db.CheckConstraint("month BETWEEN 1 AND 12", name="ck_themes_month"),
        db.Index("ix_themes_year_month", "year", "month"),
    )

    @property
    def period_label(self) -> str:
        return f"{self.year}年{self.month}月"
