from __future__ import annotations

from datetime import datetime

from . import db
from .records import GameRecord, SessionRecord
from .statuses import GameStatus, validate_status


class Game(db.Model):
    __tablename__ = "games"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(32), nullable=False, default=GameStatus.NOT_STARTED.value)
    price = db.Column(db.Float, nullable=False, default=0.0)
    rating = db.Column(db.Integer, nullable=False, default=0)
    genre = db.Column(db.String(64), nullable=True)
    platform = db.Column(db.String(64), nullable=True)
    purchase_date = db.Column(db.Date, nullable=True)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    baseline_hours = db.Column(db.Float, nullable=False, default=0.0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    sessions = db.relationship(
        "PlaySession",
        backref="game",
        order_by="PlaySession.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "price": self.price,
            "rating": self.rating,
            "genre": self.genre,
            "platform": self.platform,
            "purchase_date": self.purchase_date.isoformat() if self.purchase_date else None,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "baseline_hours": self.baseline_hours,
            "session_count": len(self.sessions),
            "created_at": self.created_at.isoformat(),
        }

    def to_record(self) -> GameRecord:
        return GameRecord(
            id=self.id,
            name=self.name,
            status=validate_status(self.status),
            price=float(self.price or 0.0),
            rating=int(self.rating or 0),
            genre=self.genre,
            platform=self.platform,
            purchase_date=self.purchase_date,
            start_date=self.start_date,
            end_date=self.end_date,
            baseline_hours=float(self.baseline_hours or 0.0),
            sessions=tuple(session.to_record() for session in self.sessions),
        )


class PlaySession(db.Model):
    __tablename__ = "play_sessions"

    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=False)
    session_date = db.Column(db.Date, nullable=False)
    hours = db.Column(db.Float, nullable=False)
    note = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "game_id": self.game_id,
            "date": self.session_date.isoformat(),
            "hours": self.hours,
            "note": self.note,
            "created_at": self.created_at.isoformat(),
        }

    def to_record(self) -> SessionRecord:
        return SessionRecord(
            date=self.session_date, hours=self.hours, note=self.note, id=self.id
        )
