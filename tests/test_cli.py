from datetime import datetime, timedelta

from jobbooster.extensions import db
from jobbooster.models import CvData, CvUpload, JobData, User, UserSession


def test_seed_all_is_idempotent(app):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["seed-all"])
    assert first.exit_code == 0
    assert "Users seeded: 2 new" in first.output
    assert "Jobs seeded: 2 new" in first.output

    second = runner.invoke(args=["seed-all"])
    assert "Users seeded: 0 new" in second.output
    assert User.query.count() == 2
    assert JobData.query.count() == 2


def test_purge_deleted(app, tmp_path):
    old = CvData(user_id="anon_a", file_name="old.pdf", file_url="/x", is_deleted=True,
                 deleted_at=datetime.utcnow() - timedelta(days=40))
    recent = CvData(user_id="anon_a", file_name="recent.pdf", file_url="/y", is_deleted=True,
                    deleted_at=datetime.utcnow())
    db.session.add_all([old, recent, CvData(user_id="anon_a", file_name="live.pdf", file_url="/z")])
    db.session.commit()

    old_file = tmp_path / "old.pdf"
    recent_file = tmp_path / "recent.pdf"
    old_file.write_bytes(b"%PDF-old")
    recent_file.write_bytes(b"%PDF-recent")
    db.session.add_all([
        CvUpload(user_id="anon_a", cv_data_id=old.id, storage_path=str(old_file)),
        CvUpload(user_id="anon_a", cv_data_id=recent.id, storage_path=str(recent_file)),
    ])
    db.session.commit()
    recent_id = recent.id
    runner = app.test_cli_runner()

    dry = runner.invoke(args=["purge-deleted", "--dry-run"])
    assert "Would remove 1 CV record(s)" in dry.output
    assert CvData.query.count() == 3
    assert old_file.exists()

    result = runner.invoke(args=["purge-deleted", "--days", "30"])
    assert result.exit_code == 0
    assert "Removed 1 CV record(s)" in result.output
    assert sorted(cv.file_name for cv in CvData.query) == ["live.pdf", "recent.pdf"]
    assert [u.cv_data_id for u in CvUpload.query] == [recent_id]
    assert not old_file.exists()
    assert recent_file.exists()


def test_purge_rejects_negative_days(app):
    result = app.test_cli_runner().invoke(args=["purge-deleted", "--days", "-1"])
    assert result.exit_code != 0


def test_purge_sessions(app):
    now = datetime.utcnow()
    db.session.add_all([
        UserSession(user_id="u1", jti="live", created_at=now),
        UserSession(user_id="u1", jti="revoked", created_at=now, revoked_at=now),
        UserSession(user_id="u2", jti="expired", created_at=now - timedelta(hours=4)),
    ])
    db.session.commit()
    runner = app.test_cli_runner()

    dry = runner.invoke(args=["purge-sessions", "--dry-run"])
    assert "Would remove 2 session(s)" in dry.output
    assert UserSession.query.count() == 3

    result = runner.invoke(args=["purge-sessions"])
    assert result.exit_code == 0
    assert "Removed 2 session(s)" in result.output
    assert [s.jti for s in UserSession.query] == ["live"]
