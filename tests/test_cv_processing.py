import json

import pytest

from jobbooster.extensions import db
from jobbooster.models import CvData, ProcessingStatus
from jobbooster.services.cv_processing import (
    InvalidTransition, ProcessingConflict, begin_processing, can_transition, complete_processing,
    fail_processing, process_cv,
)
from jobbooster.services.openai_service import UpstreamUnavailable
from jobbooster.services.response_parser import ParseError

LLM_RESULT = {
    "personalInfo": {"firstName": "Ada", "lastName": "Lovelace", "email": "ada@example.com"},
    "professionalSummary": "Analyst and programmer.",
    "technicalSkills": [{"name": "Python", "level": "expert"}, "SQL", {"name": ""}],
    "softSkills": ["Communication"],
    "languages": [{"name": "English", "proficiency": "native"}],
    "certifications": [],
    "education": [{"degree": "BSc Mathematics", "institution": "London"}],
    "workExperience": [{"title": "Engineer", "company": "Analytical Engines Ltd"}],
    "projects": [{"name": "Note G"}],
    "analysis": {"atsScore": 82, "careerLevel": "senior", "industry": "Computing"},
}


@pytest.fixture
def cv(app):
    record = CvData(
        user_id="anon_test",
        file_name="ada.pdf",
        file_url="/uploads/ada.pdf",
        extracted_text="Ada Lovelace, analyst and programmer.",
        full_name="A. Lovelace",
    )
    db.session.add(record)
    db.session.commit()
    return record


def test_transition_table():
    assert can_transition(ProcessingStatus.UPLOADED, ProcessingStatus.PROCESSING)
    assert can_transition(ProcessingStatus.PROCESSING, ProcessingStatus.FAILED)
    assert not can_transition(ProcessingStatus.UPLOADED, ProcessingStatus.COMPLETED)
    assert not can_transition(ProcessingStatus.COMPLETED, ProcessingStatus.PROCESSING)
    assert can_transition(ProcessingStatus.COMPLETED, ProcessingStatus.PROCESSING, force=True)
    assert not can_transition(ProcessingStatus.FAILED, ProcessingStatus.COMPLETED, force=True)


def test_lifecycle(cv):
    begin_processing(cv)
    assert cv.processing_status == ProcessingStatus.PROCESSING
    assert cv.processing_started_at is not None

    complete_processing(cv, {"professional_summary": "done"})
    assert cv.processing_status == ProcessingStatus.COMPLETED
    assert cv.professional_summary == "done"

    with pytest.raises(InvalidTransition):
        begin_processing(cv)
    begin_processing(cv, force=True)
    fail_processing(cv, "boom")
    assert cv.processing_status == ProcessingStatus.FAILED
    assert cv.processing_error == "boom"


def test_complete_requires_processing(cv):
    with pytest.raises(InvalidTransition):
        complete_processing(cv, {})


def test_second_begin_is_a_conflict(cv):
    begin_processing(cv)
    with pytest.raises(ProcessingConflict):
        begin_processing(cv, force=True)


def test_stale_record_loses_the_race(cv):
    # another request moved the row while this one still holds UPLOADED
    CvData.query.filter_by(id=cv.id).update(
        {CvData.processing_status: ProcessingStatus.PROCESSING}, synchronize_session=False,
    )
    assert cv.processing_status == ProcessingStatus.UPLOADED

    with pytest.raises(ProcessingConflict):
        begin_processing(cv)
    assert db.session.get(CvData, cv.id).processing_status == ProcessingStatus.PROCESSING


def test_process_cv_success(cv, fake_llm):
    fake_llm.replies.append("Here you go:\n" + json.dumps(LLM_RESULT))

    processed, result = process_cv(cv, fake_llm, request_id="req-1")

    assert result["professionalSummary"] == "Analyst and programmer."
    assert processed.processing_status == ProcessingStatus.COMPLETED
    assert processed.first_name == "Ada"
    # kept when the model has no value
    assert processed.full_name == "A. Lovelace"
    assert [s["name"] for s in processed.technical_skills] == ["Python", "SQL"]
    assert processed.work_experience[0]["company"] == "Analytical Engines Ltd"
    assert processed.analysis_count == 1
    assert processed.meta["llmProcessing"]["requestId"] == "req-1"
    assert processed.meta["llmProcessing"]["model"] == "fake-model"
    assert processed.meta["analysisScores"]["atsScore"] == 82
    assert fake_llm.calls[0]["temperature"] == 0.1


def test_process_cv_invalid_output_marks_failed(cv, fake_llm):
    fake_llm.replies.append("I could not read this CV, sorry.")

    with pytest.raises(ParseError):
        process_cv(cv, fake_llm)
    assert cv.processing_status == ProcessingStatus.FAILED
    assert cv.processing_error == "Invalid response format from AI service"


def test_process_cv_upstream_down_marks_failed(cv, fake_llm):
    fake_llm.replies.append(UpstreamUnavailable("AI service temporarily unavailable"))

    with pytest.raises(UpstreamUnavailable):
        process_cv(cv, fake_llm)
    assert cv.processing_status == ProcessingStatus.FAILED
    assert cv.processing_error == "AI service unavailable"
