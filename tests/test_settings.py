from datetime import date

from playlog import db
from playlog.models import Game, PlaySession


def _create_sample_records():
    game_one = Game(name="Game One", status="in_progress")
    game_two = Game(name="Game Two", status="wishlist")
    db.session.add_all([game_one, game_two])
    db.session.flush()

    db.session.add_all(
        [
            PlaySession(game_id=game_one.id, session_date=date(2024, 1, 1), hours=1.0),
            PlaySession(game_id=game_one.id, session_date=date(2024, 1, 2), hours=2.5),
        ]
    )
    db.session.commit()


def test_purge_data_requires_confirmation(client):
    response = client.post("/api/settings/purge-data", json={"confirm": "nope"})
    assert response.status_code == 400
    assert "DELETE" in response.get_json()["error"]


def test_purge_data_deletes_all_tables(client, app_instance):
    with app_instance.app_context():
        _create_sample_records()
        assert Game.query.count() == 2
        assert PlaySession.query.count() == 2

    response = client.post("/api/settings/purge-data", json={"confirm": "DELETE"})
    assert response.status_code == 200
    data = response.get_json()
    assert data["deleted"] == {"sessions": 2, "games": 2}
    assert data["total_deleted"] == 4

    with app_instance.app_context():
        assert Game.query.count() == 0
        assert PlaySession.query.count() == 0
