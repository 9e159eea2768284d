from enum import Enum

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Column, Integer, String

db = SQLAlchemy()

NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 255
STATUS_MAX_LENGTH = 20
EMAIL_MAX_LENGTH = 120


class ItemStatus(str, Enum):
    NEW = 'NEW'
    PROCESSED = 'PROCESSED'
    CANCELLED = 'CANCELLED'

    @classmethod
    def values(cls):
        return [status.value for status in cls]


class Item(db.Model):
    __tablename__ = 'items'
    __table_args__ = {'sqlite_autoincrement': True}  # ids are never reused after a delete

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(NAME_MAX_LENGTH), nullable=False)
    description = Column(String(DESCRIPTION_MAX_LENGTH))
    status = Column(String(STATUS_MAX_LENGTH), nullable=False, default=ItemStatus.NEW.value)
    email = Column(String(EMAIL_MAX_LENGTH), nullable=False, unique=True)  # Uniqueness enforced by the store

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'status': self.status,
            'email': self.email,
        }

    def __repr__(self):
        return f"<Item id={self.id} status={self.status}>"
