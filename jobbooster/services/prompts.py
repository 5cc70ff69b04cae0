"""Prompt construction for every LLM call the application makes.

All builders are pure functions of their inputs plus ``now`` (used for the
synthetic ids shown in example schemas). Nothing is truncated here: long
CVs or job postings go to the model as-is, so staying inside the model's
context window is the caller's concern.
"""
import json
from datetime import datetime
from typing import Any, Dict, List, NamedTuple, Optional, Tuple


class Language(NamedTuple):
    code: str
    name: str
    native_name: str


LANGUAGES = {
    "en": Language("en", "English", "English"),
    "fr": Language("fr", "French", "Français"),
    "de": Language("de", "German", "Deutsch"),
    "es": Language("es", "Spanish", "Español"),
    "it": Language("it", "Italian", "Italiano"),
    "pt": Language("pt", "Portuguese", "Português"),
    "nl": Language("nl", "Dutch", "Nederlands"),
}
DEFAULT_LANGUAGE = LANGUAGES["en"]

EMAIL_TYPES = {
    "application": "job application submission",
    "follow-up": "follow-up after application submission",
    "inquiry": "inquiry about job opportunities",
}

# word-count targets per email type
EMAIL_LENGTHS = {
    "application": "250-350",
    "follow-up": "150-200",
    "inquiry": "200-250",
}

JSON_ONLY = (
    "IMPORTANT: Return ONLY valid JSON. Do not include any explanatory text, comments, or formatting. "
    "Start your response directly with { and end with }. The response must be parseable JSON."
)

Messages = List[Dict[str, str]]


def resolve_language(value) -> Language:
    """Accept ``{code, name, nativeName}``, a bare code, or nothing."""
    if isinstance(value, Language):
        return value
    if isinstance(value, str):
        return LANGUAGES.get(value.lower(), DEFAULT_LANGUAGE)
    if isinstance(value, dict):
        code = (value.get("code") or "").lower()
        known = LANGUAGES.get(code)
        name = value.get("name") or (known.name if known else None)
        if not name:
            return DEFAULT_LANGUAGE
        native_name = value.get("nativeName") or (known.native_name if known else name)
        return Language(code or "en", name, native_name)
    return DEFAULT_LANGUAGE


def candidate_name(cv_data: Optional[Dict[str, Any]]) -> str:
    if not cv_data:
        return "the candidate"

    personal = cv_data.get("personalInfo")
    if isinstance(personal, str) and personal.strip():
        return personal.strip()
    if not isinstance(personal, dict):
        personal = {}
    for value in (
        personal.get("name"),
        personal.get("fullName"),
        cv_data.get("fullName"),
        cv_data.get("name"),
    ):
        if value and str(value).strip():
            return str(value).strip()

    first = personal.get("firstName") or cv_data.get("firstName") or ""
    last = personal.get("lastName") or cv_data.get("lastName") or ""
    full = f"{first} {last}".strip()
    return full or "the candidate"


def _item_labels(items) -> List[str]:
    """Display text for a list of strings or skill objects, empties dropped."""
    if isinstance(items, str):
        items = [items]
    labels = []
    for item in items or []:
        if isinstance(item, dict):
            item = item.get("name") or item.get("skill") or str(item)
        if item is not None and str(item).strip():
            labels.append(str(item).strip())
    return labels


def _cv_skills(cv_data: Dict[str, Any]) -> List[str]:
    skills = cv_data.get("extractedSkills")
    if isinstance(skills, list) and skills:
        return _item_labels(skills)

    raw = cv_data.get("skills")
    if isinstance(raw, dict):
        # {"technical": [...], "soft": [...], ...}
        return _item_labels(s for group in raw.values() if isinstance(group, list) for s in group)
    if isinstance(raw, list):
        return _item_labels(raw)
    return []


def _cv_experience_lines(cv_data: Dict[str, Any]) -> List[str]:
    lines = []
    for exp in cv_data.get("experience") or cv_data.get("experiences") or []:
        if not isinstance(exp, dict):
            lines.append(str(exp))
            continue
        title = exp.get("title") or exp.get("position") or "Role"
        company = exp.get("company") or "Company"
        duration = exp.get("duration")
        lines.append(f"{title} at {company} ({duration})" if duration else f"{title} at {company}")
    return lines


def _job_section(job_offer: Optional[str], job_analysis: Optional[Dict[str, Any]]) -> str:
    parts = []
    if job_offer:
        parts.append(f"JOB OFFER:\n{job_offer}")
    if job_analysis:
        fields = [
            ("Title", job_analysis.get("title")),
            ("Company", job_analysis.get("company")),
            ("Industry", job_analysis.get("industry")),
            ("Location", job_analysis.get("location")),
            ("Job Type", job_analysis.get("jobType")),
            ("Skills Required", ", ".join(_item_labels(job_analysis.get("skills")))),
            ("Requirements", ", ".join(_item_labels(job_analysis.get("requirements")))),
        ]
        lines = [f"- {label}: {value}" for label, value in fields if value]
        if lines:
            parts.append("JOB ANALYSIS:\n" + "\n".join(lines))
    return "\n\n".join(parts)


def _candidate_section(cv_data: Dict[str, Any]) -> str:
    skills = _cv_skills(cv_data)
    experience = _cv_experience_lines(cv_data)
    lines = [f"- Name: {candidate_name(cv_data)}"]
    if skills:
        lines.append(f"- Skills: {', '.join(skills)}")
    if experience:
        lines.append(f"- Key Experience: {'; '.join(experience)}")
    summary = cv_data.get("summary") or cv_data.get("professionalSummary")
    if summary:
        lines.append(f"- Summary: {summary}")
    content = cv_data.get("processedContent")
    if content:
        lines.append(f"- CV Content:\n{content}")
    return "\n".join(lines)


# --- CV analysis against a job offer (/api/analyze-cv) ---

CV_ANALYSIS_SYSTEM = (
    "You are an expert CV analyst. Your primary task is to analyze CVs against specific job offers "
    "and provide the MOST RELEVANT skills and experiences. Return at most 10 skills and 4 work "
    "experiences, chosen for their relevance to the job offer. You must respond with ONLY valid JSON."
)


def build_cv_analysis_prompt(cv_data: Dict[str, Any], job_offer: str, language=None,
                             now: Optional[datetime] = None) -> Messages:
    now = now or datetime.utcnow()
    lang = resolve_language(language)
    analysis_id = f"analysis_{int(now.timestamp() * 1000)}"

    schema = {
        "analysis": {
            "id": analysis_id,
            "cvId": cv_data.get("id") or "",
            "analysisDate": now.isoformat(),
            "status": "completed",
            "skills": [{
                "name": "skill_name",
                "category": "technical|soft|language|certification|tool",
                "level": "beginner|intermediate|advanced|expert",
                "confidence": "0.0-1.0",
                "context": ["context1", "context2"],
                "yearsOfExperience": "number",
            }],
            "experience": [{
                "title": "job_title",
                "company": "company_name",
                "duration": "duration",
                "description": "description",
                "skills": ["skill1", "skill2"],
                "achievements": ["achievement1", "achievement2"],
                "relevanceScore": "0.0-1.0",
            }],
            "education": [{
                "degree": "degree_name",
                "institution": "institution_name",
                "year": "year",
                "relevance": "high|medium|low",
                "skills": ["skill1", "skill2"],
            }],
            "strengths": ["strength1", "strength2"],
            "weaknesses": ["weakness1", "weakness2"],
            "recommendations": ["recommendation1", "recommendation2"],
            "overallScore": "0-100",
            "metadata": {"processingTime": "number", "confidence": "0.0-1.0", "version": "1.0.0"},
        },
        "jobMatch": {
            "overallMatch": "0-100",
            "skillMatches": [{
                "skill": "skill_name",
                "cvLevel": "beginner|intermediate|advanced|expert",
                "jobRequirement": "required|preferred|optional",
                "matchScore": "0.0-1.0",
                "gap": "none|minor|moderate|major",
                "recommendation": "recommendation_text",
            }],
            "missingSkills": ["skill1", "skill2"],
            "strengths": ["strength1", "strength2"],
            "recommendations": ["recommendation1", "recommendation2"],
        },
    }

    prompt = f"""
Analyze the following CV data and job offer to provide a comprehensive analysis of {candidate_name(cv_data)}.
Return a JSON response with the following EXACT structure:

{json.dumps(schema, indent=2, ensure_ascii=False)}

The response must have exactly two top-level fields: "analysis" and "jobMatch".

CV Data:
- Candidate: {candidate_name(cv_data)}
- Filename: {cv_data.get("filename") or cv_data.get("fileName") or "unknown"}
- Experience: {json.dumps(cv_data.get("experience") or [], ensure_ascii=False)}
- Education: {json.dumps(cv_data.get("education") or [], ensure_ascii=False)}
- Processed Content: {cv_data.get("processedContent") or ""}

Job Offer:
{job_offer}

Language: {lang.name}

Instructions:
1. Select the TOP 10 skills most relevant to this job offer (technical first, then soft skills, then certifications).
2. Select the TOP 4 work experiences most relevant to the job requirements.
3. Judge relevance by direct skill matches, industry, seniority and recency.
4. Write all free text (strengths, weaknesses, recommendations) in {lang.name}.

{JSON_ONLY}
"""
    return [
        {"role": "system", "content": CV_ANALYSIS_SYSTEM},
        {"role": "user", "content": prompt},
    ]


# --- Structured extraction of raw CV text (/api/extract-cv-content) ---

CV_EXTRACTION_SCHEMA = {
    "personalInfo": {
        "name": "Full Name",
        "email": "email@example.com",
        "phone": "phone number",
        "location": "city, country",
        "linkedin": "linkedin profile",
        "website": "personal website",
    },
    "summary": "Professional summary or objective",
    "experiences": [{
        "title": "Job Title",
        "company": "Company Name",
        "duration": "Start Date - End Date",
        "description": "Job description and responsibilities",
        "achievements": ["achievement 1"],
        "skills": ["skill 1"],
    }],
    "educations": [{
        "degree": "Degree Name",
        "institution": "Institution Name",
        "year": "Graduation Year",
        "field": "Field of Study",
        "gpa": "GPA if mentioned",
    }],
    "skills": {
        "technical": ["skill1"],
        "soft": ["skill1"],
        "languages": ["language1"],
        "certifications": ["cert1"],
    },
    "projects": [{
        "name": "Project Name",
        "description": "Project description",
        "technologies": ["tech1"],
        "url": "project URL if available",
    }],
}


def build_cv_extraction_prompt(cv_content: str) -> Messages:
    prompt = f"""
Analyze the following CV content and extract structured information. Return a JSON response with the following structure:

{json.dumps(CV_EXTRACTION_SCHEMA, indent=2)}

CV Content:
{cv_content}

Extract all available information from the CV. If some information is not available, use null or empty arrays as appropriate.
{JSON_ONLY}
"""
    return [
        {"role": "system", "content": "You are an expert CV parser. Extract structured information from CV content and return it as valid JSON."},
        {"role": "user", "content": prompt},
    ]


# --- Full extraction persisted on a CV record (/api/cv-data/llm-process) ---

CV_PROCESSING_SCHEMA = {
    "personalInfo": {
        "firstName": "extracted_first_name",
        "lastName": "extracted_last_name",
        "fullName": "extracted_full_name",
        "email": "extracted_email",
        "phone": "extracted_phone",
        "nationality": "extracted_nationality",
        "linkedinUrl": "extracted_linkedin_url",
        "websiteUrl": "extracted_website_url",
        "githubUrl": "extracted_github_url",
        "dateOfBirth": "YYYY-MM-DD or null",
    },
    "professionalSummary": "two or three sentence summary",
    "technicalSkills": [{
        "name": "individual_skill_name",
        "category": "programming|framework|tool|database|cloud|mobile|devops|design|ai_ml|security|testing|other",
        "level": "beginner|intermediate|advanced|expert",
        "yearsOfExperience": "number",
        "proficiency": "1-10 scale",
        "certification": "certification_name_or_null",
    }],
    "softSkills": [{
        "name": "individual_skill_name",
        "level": "beginner|intermediate|advanced|expert",
        "category": "leadership|communication|problem_solving|teamwork|adaptability|creativity|time_management|negotiation|other",
        "yearsOfExperience": "number",
    }],
    "languages": [{
        "name": "language_name",
        "proficiency": "native|fluent|conversational|basic",
        "certification": "certification_name_or_null",
    }],
    "certifications": [{
        "name": "certification_name",
        "issuer": "issuing_organization",
        "date": "YYYY-MM-DD",
        "expiryDate": "YYYY-MM-DD_or_null",
        "credentialId": "credential_id_or_null",
    }],
    "education": [{
        "degree": "degree_name",
        "institution": "institution_name",
        "fieldOfStudy": "field_of_study",
        "startDate": "YYYY-MM-DD",
        "endDate": "YYYY-MM-DD_or_null",
        "location": "location",
        "description": "description_or_null",
    }],
    "workExperience": [{
        "title": "job_title",
        "company": "company_name",
        "location": "location",
        "startDate": "YYYY-MM-DD",
        "endDate": "YYYY-MM-DD_or_null",
        "isCurrent": "boolean",
        "description": "job_description",
        "achievements": ["achievement1"],
        "skills": ["individual_skill1"],
        "responsibilities": ["responsibility1"],
        "employmentType": "full_time|part_time|contract|internship|freelance|consultant",
        "industry": "industry_name",
    }],
    "projects": [{
        "name": "project_name",
        "description": "project_description",
        "technologies": ["individual_tech1"],
        "startDate": "YYYY-MM-DD",
        "endDate": "YYYY-MM-DD_or_null",
        "url": "project_url_or_null",
    }],
    "analysis": {
        "completenessScore": "0-100",
        "readabilityScore": "0-100",
        "atsScore": "0-100",
        "overallQuality": "0-100",
        "careerLevel": "entry|mid|senior|lead",
        "industry": "industry_name",
        "yearsOfExperience": "number",
        "improvementSuggestions": ["suggestion1"],
    },
}


def build_cv_processing_prompt(cv_id: str, file_name: str, extracted_text: Optional[str]) -> Messages:
    prompt = f"""
Analyze the following CV data and extract ALL relevant information. Return a JSON response with the following EXACT structure:

{json.dumps(CV_PROCESSING_SCHEMA, indent=2)}

Instructions:
1. Extract ALL information from the CV text, don't make assumptions.
2. If information is not available, use null for optional fields.
3. For dates, use YYYY-MM-DD format or null if not available.
4. Generate a professional summary if none is explicitly provided.
5. List each skill individually: "JavaScript, React" becomes two entries.
{JSON_ONLY}

CV Data:
- ID: {cv_id}
- Filename: {file_name}
- Extracted Text: {extracted_text or "No text available"}
"""
    return [
        {"role": "system", "content": "You are an expert CV analyst. Extract all relevant information from CVs and return structured JSON data. Return ONLY valid JSON, no explanatory text."},
        {"role": "user", "content": prompt},
    ]


# --- Job posting analysis (/api/analyze-job) ---

JOB_ANALYSIS_SCHEMA = {
    "skills": ["list", "of", "technical", "and", "soft", "skills"],
    "experienceLevel": "entry|mid|senior|lead",
    "industry": "primary industry sector",
    "requirements": ["detailed", "list", "of", "requirements"],
    "companySize": "estimated company size if mentioned, otherwise 'Unknown'",
    "location": "job location or 'Remote' if not specified",
    "salaryRange": "salary range if mentioned, otherwise null",
    "keywords": ["important", "keywords", "for", "matching"],
    "jobType": "Full-time|Part-time|Contract|Internship|Temporary",
    "department": "department name if mentioned",
    "benefits": ["list", "of", "benefits"],
}

JOB_ANALYSIS_KEYS = ("skills", "experienceLevel", "requirements", "keywords")


def build_job_analysis_prompt(job_content: str) -> Messages:
    prompt = f"""
You are an expert HR analyst tasked with analyzing a job description. Analyze the following job description and provide a detailed breakdown.

JOB DESCRIPTION:
{job_content}

Provide the analysis in the following JSON format:
{json.dumps(JOB_ANALYSIS_SCHEMA, indent=2)}

Be thorough: focus on technical skills, required experience and job requirements.
{JSON_ONLY}
"""
    return [{"role": "user", "content": prompt}]


# --- Content generation ---

def build_email_prompt(cv_data: Dict[str, Any], job_offer: Optional[str], language=None,
                       email_type: str = "application", job_analysis: Optional[Dict[str, Any]] = None) -> Messages:
    """Streaming email draft (/api/generate-email)."""
    lang = resolve_language(language)
    purpose = EMAIL_TYPES.get(email_type, EMAIL_TYPES["application"])
    length = EMAIL_LENGTHS.get(email_type, EMAIL_LENGTHS["application"])

    prompt = f"""
Please create a professional email for {purpose} on behalf of {candidate_name(cv_data)}, based on the following information:

{_job_section(job_offer, job_analysis)}

CANDIDATE'S BACKGROUND:
{_candidate_section(cv_data)}

INSTRUCTIONS:
1. Write the email in {lang.native_name}
2. Start with a subject line of the form "Subject: ..."
3. Keep the email concise and impactful ({length} words)
4. Reference the attached cover letter and CV
5. Show enthusiasm for the position and company
6. End with a professional sign-off using the candidate's name
"""
    system = (
        "You are an expert career counselor helping create professional job application emails. "
        f"Generate compelling, personalized emails. Write in {lang.native_name}."
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": prompt},
    ]


def build_cover_letter_prompt(cv_data: Dict[str, Any], job_offer: Optional[str], language=None,
                              tone: str = "professional", job_analysis: Optional[Dict[str, Any]] = None) -> Messages:
    """Streaming cover letter (/api/generate-letter)."""
    lang = resolve_language(language)

    prompt = f"""
Create a compelling, ATS-optimized cover letter for {candidate_name(cv_data)}.

{_job_section(job_offer, job_analysis)}

CANDIDATE INFORMATION:
{_candidate_section(cv_data)}

INSTRUCTIONS:
- Write in {lang.native_name}
- Use a {tone} tone
- Keep it professional and concise (300-400 words)
- Highlight the skills and experience that match the job requirements, with specific examples
- Use keywords from the job description
- Structure: introduction, body (2-3 paragraphs), conclusion with a call to action
"""
    system = "You are a professional career counselor and expert copywriter writing cover letters."
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": prompt},
    ]


def build_mail_prompt(cv_data: Dict[str, Any], job_analysis: Dict[str, Any], language=None,
                      email_type: str = "application") -> Tuple[Messages, str]:
    """Non-streaming email (/api/generate-mail); returns messages and subject."""
    lang = resolve_language(language)
    position = job_analysis.get("title") or "the advertised position"

    subjects = {
        "application": f"Application for {position}",
        "follow-up": f"Follow-up: {position} Application",
        "inquiry": f"Inquiry About {position} Opportunities",
    }
    subject = subjects.get(email_type, subjects["application"])
    purpose = EMAIL_TYPES.get(email_type, EMAIL_TYPES["application"])
    length = EMAIL_LENGTHS.get(email_type, EMAIL_LENGTHS["application"])

    prompt = f"""
You are a professional career counselor. Write a {purpose} email with the subject "{subject}".

CANDIDATE INFORMATION:
{_candidate_section(cv_data)}

{_job_section(None, job_analysis)}

INSTRUCTIONS:
- Write in {lang.native_name}
- Keep it concise and professional ({length} words)
- Do not repeat the subject line in the body
- Highlight matching skills and experience
- End with a professional sign-off using the candidate's name
"""
    return [{"role": "user", "content": prompt}], subject
