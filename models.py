from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime

db = SQLAlchemy()

class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    display_name = db.Column(db.String(120), nullable=True)
    password_hash = db.Column(db.String(200), nullable=True)  # null for federated-only accounts
    provider = db.Column(db.String(30), nullable=False, default='password')  # password | google | ...
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    slots = db.relationship('StorageSlot', backref='user', lazy=True, cascade="all, delete-orphan")

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)


class StorageSlot(db.Model):
    """Durable key-value slot owned by a user. Values are opaque text, read and written whole."""
    __table_args__ = (db.UniqueConstraint('user_id', 'key', name='uq_storage_slot_user_key'),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    key = db.Column(db.String(100), nullable=False)
    value = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

