"""
Prioriwise Core
SQLAlchemy extension instance shared by all models.

Usage:
    from prioriwise.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
