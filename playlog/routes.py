from __future__ import annotations

import logging
from datetime import date
from typing import Any

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from . import db
from .dates import require_date
from .insights import (
    current_thresholds,
    summarize_activity_calendar,
    summarize_classifications,
    summarize_forecast,
    summarize_lifecycle_metrics,
    summarize_lifetime,
    summarize_money,
    summarize_on_this_day,
    summarize_streaks,
    summarize_trends,
    summarize_week_in_review,
    summarize_year_in_review,
)
from .metrics import compute_game_metrics
from .models import Game, PlaySession
from .sessions import coerce_hours
from .statuses import validate_status

bp = Blueprint("core", __name__)

logger = logging.getLogger(__name__)


def _parse_date_param(name: str) -> date | None:
    value = request.args.get(name)
    if not value:
        return None
    return require_date(value, name)


def _parse_int_param(name: str, default: int | None = None) -> int | None:
    value = request.args.get(name)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer") from exc


def _parse_optional_date(payload: dict, field: str) -> date | None:
    value = payload.get(field)
    if value in (None, ""):
        return None
    return require_date(value, field)


def _parse_non_negative(payload: dict, field: str, default: float = 0.0) -> float:
    value = payload.get(field)
    if value in (None, ""):
        return default
    number = coerce_hours(value)
    if number is None:
        raise ValueError(f"{field} must be a non-negative number")
    return number


def _parse_rating(value: Any) -> int:
    if value in (None, ""):
        return 0
    try:
        rating = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError("rating must be an integer between 0 and 10") from exc
    if not 0 <= rating <= 10:
        raise ValueError("rating must be an integer between 0 and 10")
    return rating


def _apply_game_payload(game: Game, payload: dict, *, partial: bool) -> None:
    if "name" in payload or not partial:
        name = str(payload.get("name") or "").strip()
        if not name:
            raise ValueError("name is required")
        game.name = name
    if "status" in payload or not partial:
        game.status = validate_status(payload.get("status")).value
    if "price" in payload or not partial:
        game.price = _parse_non_negative(payload, "price")
    if "rating" in payload or not partial:
        game.rating = _parse_rating(payload.get("rating"))
    if "baseline_hours" in payload or not partial:
        game.baseline_hours = _parse_non_negative(payload, "baseline_hours")
    for field in ("genre", "platform"):
        if field in payload or not partial:
            value = str(payload.get(field) or "").strip()
            setattr(game, field, value or None)
    for field in ("purchase_date", "start_date", "end_date"):
        if field in payload or not partial:
            setattr(game, field, _parse_optional_date(payload, field))

    if game.start_date and game.end_date and game.end_date < game.start_date:
        logger.warning(
            "Game %r ends (%s) before it starts (%s)", game.name, game.end_date, game.start_date
        )


def _game_payload(game: Game) -> dict:
    payload = game.to_dict()
    try:
        record = game.to_record()
    except ValueError as exc:
        logger.warning("No metrics for game %s (%r): %s", game.id, game.name, exc)
        payload["metrics"] = None
        return payload
    payload["metrics"] = compute_game_metrics(record, thresholds=current_thresholds()).to_dict()
    return payload


def _commit(action: str):
    try:
        db.session.commit()
    except SQLAlchemyError as error:
        db.session.rollback()
        logger.exception("Failed to %s", action, exc_info=error)
        return jsonify({"error": f"Failed to {action}."}), 500
    return None


@bp.route("/api/games", methods=["GET", "POST"])
def games_collection():
    if request.method == "GET":
        games = Game.query.order_by(Game.id.asc()).all()
        return jsonify([_game_payload(game) for game in games])

    payload = request.get_json(silent=True) or {}
    game = Game()
    try:
        _apply_game_payload(game, payload, partial=False)
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    db.session.add(game)
    failure = _commit("create game")
    if failure:
        return failure
    logger.info("Created game %s (%r)", game.id, game.name)
    return jsonify(_game_payload(game)), 201


@bp.route("/api/games/<int:game_id>", methods=["GET", "PUT", "DELETE"])
def games_resource(game_id: int):
    game = db.get_or_404(Game, game_id)

    if request.method == "GET":
        payload = _game_payload(game)
        payload["sessions"] = [session.to_dict() for session in game.sessions]
        return jsonify(payload)

    if request.method == "DELETE":
        db.session.delete(game)
        failure = _commit("delete game")
        if failure:
            return failure
        logger.info("Deleted game %s", game_id)
        return "", 204

    payload = request.get_json(silent=True) or {}
    try:
        _apply_game_payload(game, payload, partial=True)
    except ValueError as exc:
        db.session.rollback()
        return jsonify({"error": str(exc)}), 400

    failure = _commit("update game")
    if failure:
        return failure
    return jsonify(_game_payload(game))


@bp.route("/api/games/<int:game_id>/sessions", methods=["GET", "POST"])
def game_sessions(game_id: int):
    game = db.get_or_404(Game, game_id)

    if request.method == "GET":
        return jsonify([session.to_dict() for session in game.sessions])

    payload = request.get_json(silent=True) or {}
    try:
        session_date = require_date(payload.get("date"), "date")
        hours = coerce_hours(payload.get("hours"))
        if hours is None:
            raise ValueError("hours must be a non-negative number")
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    note = str(payload.get("note") or "").strip() or None
    session = PlaySession(session_date=session_date, hours=hours, note=note)
    game.sessions.append(session)
    if game.start_date is None:
        game.start_date = session_date

    failure = _commit("log session")
    if failure:
        return failure
    return jsonify(session.to_dict()), 201


@bp.route("/api/sessions/<int:session_id>", methods=["DELETE"])
def delete_session(session_id: int):
    session = db.get_or_404(PlaySession, session_id)
    db.session.delete(session)
    failure = _commit("delete session")
    if failure:
        return failure
    return "", 204


@bp.route("/api/settings/purge-data", methods=["POST"])
def purge_all_data():
    payload = request.get_json(silent=True) or {}
    confirmation_value = str(payload.get("confirm", "")).strip()

    if confirmation_value.lower() != "delete":
        return (
            jsonify({"error": "Type DELETE in the confirmation field to purge data."}),
            400,
        )

    try:
        sessions_deleted = PlaySession.query.delete(synchronize_session=False)
        games_deleted = Game.query.delete(synchronize_session=False)
        db.session.commit()
    except SQLAlchemyError as error:
        db.session.rollback()
        logger.exception("Failed to purge database", exc_info=error)
        return jsonify({"error": "Failed to purge database."}), 500

    return jsonify(
        {
            "deleted": {
                "sessions": sessions_deleted or 0,
                "games": games_deleted or 0,
            },
            "total_deleted": (sessions_deleted or 0) + (games_deleted or 0),
        }
    )


@bp.route("/api/insights/calendar")
def insights_calendar():
    try:
        summary = summarize_activity_calendar(
            granularity=request.args.get("granularity", "month"),
            start_date=_parse_date_param("start"),
            end_date=_parse_date_param("end"),
        )
    except ValueError as error:
        return jsonify({"error": str(error)}), 400
    return jsonify(summary)


@bp.route("/api/insights/streaks")
def insights_streaks():
    try:
        summary = summarize_streaks(
            as_of=_parse_date_param("as_of"),
            threshold_days=_parse_int_param("threshold"),
        )
    except ValueError as error:
        return jsonify({"error": str(error)}), 400
    return jsonify(summary)


@bp.route("/api/insights/trends")
def insights_trends():
    try:
        summary = summarize_trends(
            as_of=_parse_date_param("as_of"),
            months=_parse_int_param("months", 12),
        )
    except ValueError as error:
        return jsonify({"error": str(error)}), 400
    return jsonify(summary)


@bp.route("/api/insights/forecast")
def insights_forecast():
    try:
        summary = summarize_forecast(
            as_of=_parse_date_param("as_of"),
            window_months=_parse_int_param("window"),
        )
    except ValueError as error:
        return jsonify({"error": str(error)}), 400
    return jsonify(summary)


@bp.route("/api/insights/classifications")
def insights_classifications():
    try:
        summary = summarize_classifications(as_of=_parse_date_param("as_of"))
    except ValueError as error:
        return jsonify({"error": str(error)}), 400
    return jsonify(summary)


@bp.route("/api/insights/year/<int:year>")
def insights_year_in_review(year: int):
    try:
        summary = summarize_year_in_review(year)
    except ValueError as error:
        return jsonify({"error": str(error)}), 400
    return jsonify(summary)


@bp.route("/api/insights/on-this-day")
def insights_on_this_day():
    try:
        summary = summarize_on_this_day(as_of=_parse_date_param("as_of"))
    except ValueError as error:
        return jsonify({"error": str(error)}), 400
    return jsonify(summary)


@bp.route("/api/insights/lifecycle")
def insights_lifecycle_metrics():
    try:
        summary = summarize_lifecycle_metrics(today=_parse_date_param("as_of"))
    except ValueError as error:
        return jsonify({"error": str(error)}), 400
    return jsonify(summary)


@bp.route("/api/insights/week")
def insights_week_in_review():
    try:
        summary = summarize_week_in_review(week_of=_parse_date_param("week_of"))
    except ValueError as error:
        return jsonify({"error": str(error)}), 400
    return jsonify(summary)


@bp.route("/api/insights/money")
def insights_money():
    try:
        summary = summarize_money(as_of=_parse_date_param("as_of"))
    except ValueError as error:
        return jsonify({"error": str(error)}), 400
    return jsonify(summary)


@bp.route("/api/insights/lifetime")
def insights_lifetime():
    try:
        summary = summarize_lifetime(as_of=_parse_date_param("as_of"))
    except ValueError as error:
        return jsonify({"error": str(error)}), 400
    return jsonify(summary)
