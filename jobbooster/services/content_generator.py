# filename: content_generator.py
# location: jobbooster/services/

import logging

from jobbooster.databases import save_generated_content
from jobbooster.services.prompts import (
    EMAIL_TYPES, build_cover_letter_prompt, build_email_prompt, build_mail_prompt, resolve_language,
)

logger = logging.getLogger(__name__)

EMAIL = "email"
COVER_LETTER = "cover_letter"


def content_type_or_default(value):
    return value if value in EMAIL_TYPES else "application"


def stream_email(client, cv_data, job_offer, language=None, email_type="application", job_analysis=None):
    messages = build_email_prompt(cv_data, job_offer, language, content_type_or_default(email_type), job_analysis)
    return client.stream(messages, temperature=0.7, max_tokens=1500)


def stream_cover_letter(client, cv_data, job_offer, language=None, tone="professional", job_analysis=None):
    messages = build_cover_letter_prompt(cv_data, job_offer, language, tone, job_analysis)
    return client.stream(messages, temperature=0.7, max_tokens=2000)


def generate_mail(client, cv_data, job_analysis, language=None, email_type="application"):
    """Blocking email generation. Returns ``(completion, subject)``."""
    messages, subject = build_mail_prompt(cv_data, job_analysis, language, content_type_or_default(email_type))
    completion = client.complete(messages, temperature=0.7, max_tokens=1000)
    return completion, subject


def persist_generated(owner_id, kind, cv_data_id=None, job_data_id=None, language=None,
                      content_type="application", model=None, title=None):
    """Build the on_complete callback used by the SSE relay."""
    lang = resolve_language(language)

    def on_complete(text):
        if not text.strip():
            return
        item = save_generated_content(
            owner_id,
            kind,
            text,
            content_type=content_type_or_default(content_type),
            language=lang.code,
            title=title,
            cv_data_id=cv_data_id,
            job_data_id=job_data_id,
            model=model,
            metadata={"streamed": True},
        )
        logger.info("Saved generated %s %s (%d words)", kind, item.id, item.word_count)

    return on_complete
