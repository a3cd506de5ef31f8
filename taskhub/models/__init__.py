"""
TaskHub
SQLAlchemy handle shared by every model module.

Usage:
    from taskhub.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
