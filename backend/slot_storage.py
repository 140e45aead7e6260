"""Key-value storage on the StorageSlot table, scoped to one user."""

from models import db, StorageSlot


class SlotStorage:
    def __init__(self, user_id):
        self.user_id = user_id

    def get(self, key):
        slot = StorageSlot.query.filter_by(user_id=self.user_id, key=key).first()
        return slot.value if slot else None

    def set(self, key, value):
        slot = StorageSlot.query.filter_by(user_id=self.user_id, key=key).first()
        if slot is None:
            slot = StorageSlot(user_id=self.user_id, key=key)
            db.session.add(slot)
        slot.value = value
        db.session.commit()
