import io
import json

from jobbooster.extensions import db
from jobbooster.models import CvData, CvUpload, JobData

JOB_CONTENT = (
    "We are hiring a backend engineer to build Flask services, design SQL schemas, "
    "and run them in production with care."
)
JOB_ANALYSIS = {
    "title": "Backend Engineer",
    "skills": ["Python", "Flask"],
    "experienceLevel": "senior",
    "requirements": ["5+ years"],
    "keywords": ["backend"],
    "salaryRange": "60-80k",
}


def test_analyze_job_too_short(client, fake_llm):
    response = client.post("/api/analyze-job", json={"jobContent": "x" * 99})
    assert response.status_code == 400
    assert response.get_json()["error"] == "Job content must be at least 100 characters long"
    assert fake_llm.calls == []


def test_analyze_job_missing_content(client):
    response = client.post("/api/analyze-job", json={})
    assert response.status_code == 400


def test_analyze_job_parses_streamed_json(client, fake_llm):
    body = json.dumps(JOB_ANALYSIS)
    fake_llm.chunks = ["```json\n", body[:20], body[20:], "\n```"]

    response = client.post("/api/analyze-job", json={"jobContent": JOB_CONTENT})

    data = response.get_json()
    assert response.status_code == 200
    assert data["success"] is True
    assert data["analysis"]["skills"] == ["Python", "Flask"]
    assert data["contentLength"] == len(JOB_CONTENT)
    assert "degraded" not in data


def test_analyze_job_degraded_fallback_is_flagged(client, fake_llm, auth):
    headers, user_id = auth
    job = JobData(user_id=user_id, content=JOB_CONTENT)
    db.session.add(job)
    db.session.commit()
    fake_llm.chunks = ["I am not able to answer in JSON."]

    response = client.post("/api/analyze-job", json={"jobContent": JOB_CONTENT, "jobId": job.id}, headers=headers)

    data = response.get_json()
    assert response.status_code == 200
    assert data["degraded"] is True
    assert data["degradedReason"] == "no JSON object found"
    assert data["analysis"]["experienceLevel"] == "mid"
    assert "jobId" not in data
    assert db.session.get(JobData, job.id).analysis_json is None


def test_analyze_job_attaches_to_owned_job(client, fake_llm, auth):
    headers, user_id = auth
    job = JobData(user_id=user_id, content=JOB_CONTENT)
    db.session.add(job)
    db.session.commit()
    fake_llm.chunks = [json.dumps(JOB_ANALYSIS)]

    response = client.post("/api/analyze-job", json={"jobContent": JOB_CONTENT, "jobId": job.id}, headers=headers)

    assert response.status_code == 200
    assert response.get_json()["jobId"] == job.id
    stored = db.session.get(JobData, job.id)
    assert stored.title == "Backend Engineer"
    assert stored.skills_json == ["Python", "Flask"]


def test_analyze_job_unknown_job(client, fake_llm):
    response = client.post("/api/analyze-job", json={"jobContent": JOB_CONTENT, "jobId": "missing"})
    assert response.status_code == 404


def test_analyze_cv_requires_inputs(client):
    response = client.post("/api/analyze-cv", json={"cvData": {"name": "Ada"}})
    assert response.status_code == 400
    assert response.get_json()["error"] == "CV data and job offer are required"


def test_analyze_cv_ranks_and_limits(client, fake_llm):
    skills = [{"name": f"tool{i}", "category": "tool", "confidence": 0.9} for i in range(12)]
    skills.append({"name": "Python", "category": "technical", "confidence": 0.5})
    experience = [{"title": f"Role {i}", "relevanceScore": i / 10} for i in range(6)]
    fake_llm.replies.append(json.dumps({
        "analysis": {"skills": skills, "experience": experience, "overallScore": 71},
        "jobMatch": {"overallMatch": 64, "missingSkills": ["Kubernetes"]},
    }))

    response = client.post("/api/analyze-cv", json={"cvData": {"name": "Ada"}, "jobOffer": JOB_CONTENT})

    data = response.get_json()
    assert response.status_code == 200
    analysis = data["result"]["analysis"]
    assert len(analysis["skills"]) == 10
    assert analysis["skills"][0]["name"] == "Python"
    assert [e["title"] for e in analysis["experience"]] == ["Role 5", "Role 4", "Role 3", "Role 2"]
    assert data["result"]["jobMatch"]["overallMatch"] == 64
    assert JOB_CONTENT in fake_llm.calls[0]["messages"][-1]["content"]


def test_analyze_cv_tolerates_non_string_category(client, fake_llm):
    fake_llm.replies.append(json.dumps({
        "analysis": {"skills": [
            {"name": "Odd", "category": ["technical"], "confidence": 0.9},
            {"name": "Python", "category": "technical", "confidence": 0.1},
        ]},
        "jobMatch": {"overallMatch": 50},
    }))

    response = client.post("/api/analyze-cv", json={"cvData": {"name": "Ada"}, "jobOffer": JOB_CONTENT})

    assert response.status_code == 200
    names = [s["name"] for s in response.get_json()["result"]["analysis"]["skills"]]
    assert names == ["Python", "Odd"]


def test_analyze_cv_wrong_shape(client, fake_llm):
    fake_llm.replies.append('{"summary": "looks good"}')
    response = client.post("/api/analyze-cv", json={"cvData": {"name": "Ada"}, "jobOffer": JOB_CONTENT})
    assert response.status_code == 500
    assert "analysis, jobMatch" in response.get_json()["error"]


def test_analyze_cv_unparseable(client, fake_llm):
    fake_llm.replies.append("no json at all")
    response = client.post("/api/analyze-cv", json={"cvData": {"name": "Ada"}, "jobOffer": JOB_CONTENT})
    assert response.status_code == 500
    assert response.get_json()["error"] == "Invalid response format from AI service"


def test_extract_cv_content(client, fake_llm):
    fake_llm.replies.append(json.dumps({
        "personalInfo": {"name": "Ada Lovelace"},
        "skills": {"technical": ["Python"], "soft": ["Writing"]},
        "experiences": [{"title": "Analyst"}],
    }))

    response = client.post("/api/extract-cv-content", json={"cvContent": "Ada Lovelace CV", "filename": "ada.txt"})

    data = response.get_json()
    assert response.status_code == 200
    assert data["cvData"]["filename"] == "ada.txt"
    assert data["cvData"]["experience"] == [{"title": "Analyst"}]
    assert data["extractedData"]["personalInfo"]["name"] == "Ada Lovelace"


def _upload(client, content, filename="cv.doc", content_type="application/msword", **form):
    return client.post(
        "/api/upload-cv",
        data={"file": (io.BytesIO(content), filename, content_type), **form},
        content_type="multipart/form-data",
    )


def test_upload_too_large(client, fake_llm):
    response = _upload(client, b"a" * (15 * 1024 * 1024), filename="big.pdf", content_type="application/pdf")
    assert response.status_code == 400
    assert response.get_json()["error"] == "File size exceeds 10MB limit"


def test_upload_rejects_other_types(client):
    response = _upload(client, b"hello world", filename="cv.txt", content_type="text/plain")
    assert response.status_code == 400
    assert response.get_json()["error"] == "Only PDF, DOC, and DOCX files are allowed"


def test_upload_without_file(client):
    response = client.post("/api/upload-cv")
    assert response.status_code == 400
    assert response.get_json()["error"] == "No file provided"


def test_upload_stores_cv_for_anonymous_owner(client, fake_llm, app):
    fake_llm.replies.append(json.dumps({"skills": {"technical": ["Python", "SQL"], "soft": ["Teamwork"]}}))

    response = _upload(client, b"\x00\x01Ada Lovelace\nPython developer\x00\x02")

    data = response.get_json()
    assert response.status_code == 200
    assert data["sessionId"].startswith("anon_")
    assert data["extractedSkills"] == ["Python", "SQL", "Teamwork"]
    assert "Ada Lovelace" in data["cvData"]["processedContent"]
    assert data["cvData"]["status"] == "UPLOADED"

    cv = db.session.get(CvData, data["cvData"]["id"])
    assert cv.user_id == data["sessionId"]
    upload = CvUpload.query.filter_by(cv_data_id=cv.id).one()
    assert upload.storage_path.startswith(app.config["UPLOAD_FOLDER"])


def test_upload_keeps_cv_when_skill_extraction_fails(client, fake_llm):
    fake_llm.replies.append("not json")

    response = _upload(client, b"Ada Lovelace, analyst", sessionId="anon_known")

    data = response.get_json()
    assert response.status_code == 200
    assert data["sessionId"] == "anon_known"
    assert data["extractedSkills"] == []
    assert "warning" in data
