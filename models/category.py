"""
Модуль: `models/category.py`.
Назначение: Категории работ (кайсё, гёсё, сосё и т.д.), управляемые администратором.
"""

from extensions import db


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)

    artworks = db.relationship("Artwork", back_populates="category", lazy="dynamic")
