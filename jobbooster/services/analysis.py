# filename: analysis.py
# location: jobbooster/services/

import logging
import time
from datetime import datetime

from jobbooster.services.prompts import (
    JOB_ANALYSIS_KEYS, build_cv_analysis_prompt, build_cv_extraction_prompt, build_job_analysis_prompt,
)
from jobbooster.services.response_parser import Failed, ParseError, parse_model_output

logger = logging.getLogger(__name__)

MIN_JOB_CONTENT_LENGTH = 100
MAX_SKILLS = 10
MAX_EXPERIENCES = 4

# technical > soft > language > certification > tool
CATEGORY_PRIORITY = {"technical": 5, "soft": 4, "language": 3, "certification": 2, "tool": 1}

# Shown instead of a real analysis when the model output cannot be parsed
FALLBACK_JOB_ANALYSIS = {
    "skills": ["JavaScript", "React", "TypeScript", "Node.js", "HTML", "CSS", "Git", "REST APIs", "Agile"],
    "experienceLevel": "mid",
    "industry": "Technology",
    "requirements": [
        "3+ years of frontend development experience",
        "Strong proficiency in React and TypeScript",
        "Experience with modern JavaScript (ES6+)",
        "Knowledge of RESTful APIs and state management",
        "Familiarity with version control (Git)",
        "Experience with Agile development methodologies",
    ],
    "companySize": "50-200 employees",
    "location": "Remote",
    "salaryRange": "$80,000 - $120,000",
    "keywords": [
        "frontend", "web development", "javascript", "react", "typescript",
        "user interface", "user experience", "responsive design", "web applications",
    ],
    "jobType": "Full-time",
    "department": "Engineering",
    "benefits": [
        "Health insurance", "Dental insurance", "401k matching",
        "Flexible work hours", "Professional development budget",
    ],
}


class AnalysisShapeError(ParseError):
    """The model answered with JSON, but not in the analysis/jobMatch shape."""


def _number(value, default=0.0):
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _category_priority(category):
    if not isinstance(category, str):
        return 0
    return CATEGORY_PRIORITY.get(category, 0)


def top_skills(skills, limit=MAX_SKILLS):
    """Highest category priority first, then highest confidence."""
    skills = [s for s in skills or [] if isinstance(s, dict)]
    ranked = sorted(
        skills,
        key=lambda s: (_category_priority(s.get("category")), _number(s.get("confidence"))),
        reverse=True,
    )
    return ranked[:limit]


def top_experiences(experiences, limit=MAX_EXPERIENCES):
    experiences = [e for e in experiences or [] if isinstance(e, dict)]
    return sorted(experiences, key=lambda e: _number(e.get("relevanceScore")), reverse=True)[:limit]


def normalize_cv_analysis(raw, now=None):
    """
    Bring alternative response shapes into ``{analysis, jobMatch}``.
    Returns None when neither part can be recovered.
    """
    if raw.get("analysis") and raw.get("jobMatch"):
        return {"analysis": raw["analysis"], "jobMatch": raw["jobMatch"]}

    now = now or datetime.utcnow()
    analysis = raw.get("analysis")
    job_match = raw.get("jobMatch")
    match_analysis = raw.get("job match analysis") or {}
    recommendations = raw.get("actionable recommendations") or []

    if not analysis and match_analysis:
        analysis = {
            "id": raw.get("id") or f"analysis_{int(now.timestamp() * 1000)}",
            "cvId": raw.get("cvId") or "",
            "analysisDate": raw.get("analysisDate") or now.isoformat(),
            "status": "completed",
            "skills": raw.get("skills") or [],
            "experience": raw.get("experience") or [],
            "education": raw.get("education") or [],
            "strengths": match_analysis.get("strengths") or [],
            "weaknesses": match_analysis.get("weaknesses") or [],
            "recommendations": recommendations,
            "overallScore": match_analysis.get("overallMatch") or 0,
            "metadata": raw.get("metadata"),
        }

    if not job_match:
        relevance = raw.get("experience relevance scoring") or {}
        job_match = {
            "overallMatch": match_analysis.get("overallMatch") or 0,
            "skillMatches": [
                {
                    "skill": skill,
                    "cvLevel": "intermediate",
                    "jobRequirement": "preferred",
                    "matchScore": score if isinstance(score, (int, float)) else 0.5,
                    "gap": "moderate" if isinstance(score, (int, float)) and score < 0.5 else "none",
                    "recommendation": f"Improve {skill} skills",
                }
                for skill, score in relevance.items()
            ],
            "missingSkills": [
                gap.get("skill") if isinstance(gap, dict) else gap
                for gap in match_analysis.get("skill gaps") or []
            ],
            "strengths": match_analysis.get("strengths") or [],
            "recommendations": [
                rec.get("recommendation", rec) if isinstance(rec, dict) else rec
                for rec in recommendations
            ],
        }

    if analysis and job_match:
        return {"analysis": analysis, "jobMatch": job_match}
    return None


def analyze_cv(client, cv_data, job_offer, language=None):
    """Score a CV against a job offer. Returns ``(result, processing_time_ms)``."""
    started = time.perf_counter()
    messages = build_cv_analysis_prompt(cv_data, job_offer, language)
    completion = client.complete(messages, temperature=0.3, max_tokens=6000)

    outcome = parse_model_output(completion.content)
    if isinstance(outcome, Failed):
        raise ParseError(outcome.reason)

    result = normalize_cv_analysis(outcome.data)
    if result is None:
        raise AnalysisShapeError("Expected fields: analysis, jobMatch")

    processing_time = int((time.perf_counter() - started) * 1000)
    analysis = result["analysis"]
    metadata = analysis.get("metadata") or {"confidence": 0.8, "version": "1.0.0"}
    analysis["metadata"] = {**metadata, "processingTime": processing_time}
    analysis["skills"] = top_skills(analysis.get("skills"))
    analysis["experience"] = top_experiences(analysis.get("experience"))

    logger.info("CV analysis done in %dms (overall match %s)", processing_time,
                result["jobMatch"].get("overallMatch"))
    return result, processing_time


def extract_cv_content(client, cv_content, filename=None, now=None):
    """Structure raw CV text. Returns ``(cv_data, extracted_data)``."""
    now = now or datetime.utcnow()
    completion = client.complete(build_cv_extraction_prompt(cv_content), temperature=0.1, max_tokens=3000)

    outcome = parse_model_output(completion.content)
    if isinstance(outcome, Failed):
        raise ParseError(outcome.reason)

    extracted = outcome.data
    cv_data = {
        "id": f"cv_{int(now.timestamp() * 1000)}",
        "filename": filename or "uploaded_cv",
        "size": len(cv_content),
        "uploadDate": now.isoformat(),
        "experience": extracted.get("experiences") or extracted.get("experience") or [],
        "education": extracted.get("educations") or extracted.get("education") or [],
        "processedContent": cv_content,
        "status": "completed",
        "personalInfo": extracted.get("personalInfo"),
        "summary": extracted.get("summary"),
        "skills": extracted.get("skills"),
        "projects": extracted.get("projects") or [],
    }
    return cv_data, extracted


def flatten_skills(skills):
    if isinstance(skills, dict):
        return [s for group in skills.values() if isinstance(group, list) for s in group if s]
    if isinstance(skills, list):
        return [s.get("name") if isinstance(s, dict) else s for s in skills if s]
    return []


def analyze_job(client, job_content):
    """
    Analyze a job posting from the streamed completion.

    Returns ``(outcome, processing_time_ms)`` where ``outcome`` is ``Ok``
    or ``Degraded`` (fallback analysis with the parse failure reason).
    """
    started = time.perf_counter()
    chunks = client.stream(build_job_analysis_prompt(job_content), temperature=0.3, max_tokens=2000)
    full_response = "".join(chunks)

    outcome = parse_model_output(full_response, JOB_ANALYSIS_KEYS, fallback=FALLBACK_JOB_ANALYSIS)
    processing_time = int((time.perf_counter() - started) * 1000)

    if outcome.degraded:
        logger.warning("Job analysis degraded: %s", outcome.reason)
    else:
        logger.info("Job analysis done in %dms: %d skills, %d requirements", processing_time,
                    len(outcome.data.get("skills") or []), len(outcome.data.get("requirements") or []))
    return outcome, processing_time
