"""Prompt templates for the generation workflow and the assistant."""
from __future__ import annotations

import json
from typing import Any

from autocv.models import ARTIFACT_KEYS, METRIC_FIELDS, ApplicationRecord, Persona

_SYSTEM_INSTRUCTION = """\
You are an expert Career Assistant acting on behalf of a candidate named {name}.

CANDIDATE PROFILE (SOURCE OF TRUTH):
Name: {name}
Email: {email}
Phone: {phone}
LinkedIn: {linkedin}
Website: {website}
GitHub: {github}

BACKGROUND / EXPERIENCE DATA:
{extra_info}

YOUR GOAL:
Analyze the provided Job Description (JD) image and generate specific application materials.

CRITICAL RULES:
1. NEVER use placeholders like "[Insert Date]", "[Company Name]", or "Your Name Here".
2. USE the Candidate Profile and Background Data above to fill out Experience, Skills, and Projects.
3. If a specific detail (like an exact date) is missing from the background data, infer a
   reasonable one or use general terms (e.g. "2020 - Present"), but DO NOT leave a placeholder.
4. Maintain a professional yet innovative tone.
"""

_RESUME_PROMPT = """\
I am sending you a screenshot of a Job Description.

HERE IS MY BACKGROUND DATA AGAIN. USE THIS TO POPULATE THE RESUME CONTENT. DO NOT HALLUCINATE GENERIC INFO:
\"\"\"
{extra_info}
\"\"\"

TASKS:
1. Extract the Company Name from the image.
2. Write a short 2-sentence summary of the JD.
3. Generate a tailored Resume in JSON format based on my BACKGROUND DATA and this JD.
   * The 'resume' object MUST start with a 'personalDetails' object containing my real
     Name, Email, Phone, LinkedIn, Website, and GitHub.
   * The 'experience' and 'projects' arrays MUST hold MY actual information from the
     background data, tailored to match the JD keywords.
4. Generate a 'resumeDoc' string: the fully formatted Resume in Markdown.
   * It MUST start with a header line: {header}
   * Its body must contain the same real experience data as the JSON.

Return ONLY a JSON object with this exact structure:
{shape}
"""

COVER_LETTER_PROMPT = (
    "Based on the resume you just generated and the JD, write a compelling Cover Letter. "
    "Use my real contact info in the header."
)
RECRUITER_EMAIL_PROMPT = (
    "Draft a short, punchy email to the Recruiter attaching the application. "
    "Sign off with my real name."
)
HIRING_MANAGER_EMAIL_PROMPT = (
    "Draft a slightly more technical email to the Hiring Manager focusing on my R&D value. "
    "Sign off with my real name."
)
NETWORKING_DM_PROMPT = (
    "Draft a short LinkedIn DM (under 300 chars) to connect with a peer at the company."
)

METRICS_PROMPT = """\
Analyze the JD again for the dashboard statistics. Calculate the match based on these EXACT rules:
1. Skills Match: up to 60 points.
2. Role Similarity: up to 20 points.
3. Remote Policy: 10 points for Remote, 5 for Hybrid, 0 for Onsite.
4. R&D Focus: up to 10 points if the role is more R&D/Innovation than standard Dev maintenance.
5. Startup Bonus: 5 points if it looks like a startup, 0 otherwise.
6. Automation Bonus: 10 points if I can automate parts of the job, 0 otherwise.

Return JSON only.
"""

_METRIC_DESCRIPTIONS: dict[str, str] = {
    "skillsMatch": "Score out of 60 based on skills match",
    "roleSimilarities": "Score out of 20 based on previous role similarity",
    "remotePolicy": "10 for Remote, 5 for Hybrid, 0 for Onsite",
    "rndFocus": "Score out of 10. Higher if the role is R&D oriented rather than just Dev.",
    "startupBonus": "5 if it is a startup, 0 otherwise",
    "automationBonus": "10 if the role involves automation, 0 otherwise",
}

METRICS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        key: {"type": "number", "description": _METRIC_DESCRIPTIONS[key]}
        for key, _ in METRIC_FIELDS
    },
    "required": [key for key, _ in METRIC_FIELDS],
    "additionalProperties": False,
}

_ASSISTANT_INSTRUCTION = """\
You are the AutoCV Assistant, a friendly helper inside a job-application tool.
You answer questions about the user's past applications and hand back documents
that were generated for them.

Here are all of the user's applications as JSON (newest first):
{applications}

When the user asks for a document, include a download token in your reply using
EXACTLY this shape, one token per file:
[[DOWNLOAD|<application id>|<artifact key>|<button label>]]

Valid artifact keys: {keys}.
Only use ids that appear in the data above. Keep the label short, e.g. "Acme Resume".
Never invent application data that is not in the JSON.
"""


def system_instruction(persona: Persona) -> str:
    return _SYSTEM_INSTRUCTION.format(
        name=persona.name,
        email=persona.email,
        phone=persona.phone,
        linkedin=persona.linkedin,
        website=persona.website,
        github=persona.github,
        extra_info=persona.extra_info,
    )


def _contact_header(persona: Persona) -> str:
    return " | ".join(
        [persona.name, persona.email, persona.phone, persona.linkedin, persona.website, persona.github]
    )


def resume_prompt(persona: Persona) -> str:
    shape = {
        "companyName": "Extracted Company Name",
        "summary": "JD Summary",
        "resume": {
            "personalDetails": {
                "name": persona.name,
                "email": persona.email,
                "phone": persona.phone,
                "linkedin": persona.linkedin,
                "website": persona.website,
                "github": persona.github,
            },
            "professionalSummary": "tailored summary...",
            "skills": ["skill1", "skill2"],
            "experience": [
                {
                    "title": "Real Role Title",
                    "company": "Real Company",
                    "period": "Real Dates",
                    "achievements": ["Real achievement 1", "Real achievement 2"],
                }
            ],
            "education": [{"degree": "Degree Name", "school": "School Name", "year": "Year"}],
            "projects": [{"name": "Project Name", "description": "Description", "link": "URL"}],
        },
        "resumeDoc": "Full markdown resume content starting with header...",
    }
    return _RESUME_PROMPT.format(
        extra_info=persona.extra_info,
        header=_contact_header(persona),
        shape=json.dumps(shape, indent=2),
    )


def assistant_instruction(records: list[ApplicationRecord]) -> str:
    # Whole history goes in; nothing is truncated.
    applications = json.dumps([r.to_dict() for r in records], indent=2)
    return _ASSISTANT_INSTRUCTION.format(
        applications=applications,
        keys=", ".join(ARTIFACT_KEYS),
    )
