import csv
import io
import json

import pytest

from jobbooster.databases import log_activity, save_generated_content
from jobbooster.extensions import db
from jobbooster.models import CvData, CvUpload, JobData, Profile, User, UserActivity
from jobbooster.services import gdpr
from jobbooster.services.gdpr import (
    GdprDeletionError, data_summary, delete_user_data, deletion_options, export_user_data, subject_hash,
    update_consent,
)


@pytest.fixture
def populated(auth, app, tmp_path):
    """A registered user with one of everything, plus an unrelated owner."""
    headers, user_id = auth
    upload_path = tmp_path / "cv.pdf"
    upload_path.write_bytes(b"%PDF-1.4")

    db.session.add(CvData(user_id=user_id, file_name="cv.pdf", file_url=str(upload_path)))
    db.session.add(CvUpload(user_id=user_id, file_name="cv.pdf", storage_path=str(upload_path)))
    db.session.add(JobData(user_id=user_id, content="Python developer"))
    db.session.add(CvData(user_id="anon_other", file_name="other.pdf", file_url="/tmp/other.pdf"))
    db.session.commit()
    save_generated_content(user_id, "email", "Dear team")
    log_activity(user_id, "cv_upload", resource_type="cv")
    return headers, user_id, upload_path


def test_deletion_options_default_to_everything():
    options = deletion_options({"deleteSessions": False})
    assert options["deleteSessions"] is False
    assert all(value for key, value in options.items() if key != "deleteSessions")


def test_deletion_options_reject_non_boolean_flags():
    with pytest.raises(ValueError, match="deleteSessions"):
        deletion_options({"deleteSessions": "false"})
    with pytest.raises(ValueError):
        deletion_options({"deleteProfile": 0})


def test_full_deletion_leaves_zero_summary(populated):
    _, user_id, upload_path = populated
    assert data_summary(user_id) == {
        "profile": 1, "cvData": 1, "generatedContent": 1, "activityLogs": 1, "sessions": 1,
    }

    deleted, log = delete_user_data(user_id, deletion_options({}), "Leaving the service")

    assert data_summary(user_id) == {
        "profile": 0, "cvData": 0, "generatedContent": 0, "activityLogs": 0, "sessions": 0,
    }
    assert deleted == 8  # session, activity, content, cv, upload, job, profile, user
    assert "Deleted user profile" in log
    assert db.session.get(User, user_id) is None
    assert JobData.query.filter_by(user_id=user_id).count() == 0
    assert not upload_path.exists()
    assert CvData.query.filter_by(user_id="anon_other").count() == 1

    audit = UserActivity.query.filter_by(action="data_deletion").one()
    assert audit.user_id is None
    assert audit.subject_hash == subject_hash(user_id)
    assert audit.meta["reason"] == "Leaving the service"


def test_partial_deletion(populated):
    _, user_id, upload_path = populated
    options = deletion_options({"deleteProfile": False, "deleteCvData": False, "deleteCommunications": False})

    delete_user_data(user_id, options, "Tidy up")

    summary = data_summary(user_id)
    assert summary["profile"] == 1
    assert summary["cvData"] == 1
    assert summary["generatedContent"] == 1
    assert summary["sessions"] == 0
    assert summary["activityLogs"] == 0
    assert upload_path.exists()


def test_failed_step_rolls_back_everything(populated, monkeypatch):
    _, user_id, upload_path = populated
    before = data_summary(user_id)

    def explode(user_id, log):
        raise RuntimeError("disk full")

    monkeypatch.setattr(gdpr, "DELETION_STEPS", gdpr.DELETION_STEPS[:-1] + [(explode, ("deleteProfile",))])

    with pytest.raises(GdprDeletionError):
        delete_user_data(user_id, deletion_options({}), "Leaving")

    assert data_summary(user_id) == before
    assert UserActivity.query.filter_by(action="data_deletion").count() == 0
    assert upload_path.exists()


def test_json_export(populated):
    _, user_id, _ = populated
    body, content_type, filename = export_user_data(user_id, "json")

    data = json.loads(body)
    assert content_type == "application/json"
    assert filename.endswith(".json")
    assert data["profile"]["email"] == "jane@example.com"
    assert data["cvData"][0]["hasContent"] is False
    assert data["generatedContent"][0]["content"] == "Dear team"
    assert UserActivity.query.filter_by(user_id=user_id, action="data_export").count() == 1


def test_csv_export(populated):
    _, user_id, _ = populated
    body, content_type, _ = export_user_data(user_id, "csv")

    rows = list(csv.reader(io.StringIO(body)))
    assert content_type == "text/csv"
    assert rows[0] == ["Data Type", "Field", "Value", "Date"]
    assert ["Profile", "email", "jane@example.com"] in [row[:3] for row in rows]
    assert any(row[0] == "Generated Content 1" and row[1] == "content" for row in rows)


def test_text_export(populated):
    _, user_id, _ = populated
    body, content_type, _ = export_user_data(user_id, "txt")
    assert content_type == "text/plain"
    assert body.startswith("USER DATA EXPORT")
    assert "CV DATA (1)" in body


def test_update_consent_creates_profile_for_anonymous_owner(app):
    profile = update_consent("anon_abc", {"analytics": False}, consent_date="2024-05-01T10:00:00Z")

    assert profile.gdpr_consent is True
    assert profile.consent_version == "1.0"
    assert profile.consent_date.year == 2024
    assert profile.preferences["analytics"] is False
    assert Profile.query.filter_by(user_id="anon_abc").count() == 1
    assert UserActivity.query.filter_by(user_id="anon_abc", action="consent_updated").count() == 1
