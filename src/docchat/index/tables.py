"""Static vocabulary tables used by the similarity ranker."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Tuple

# Query term -> related domain vocabulary. Multi-word entries match as phrases.
SEMANTIC_GROUPS: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "vacation": ("holiday", "leave", "time off", "pto", "break"),
        "sick": ("illness", "medical", "health", "doctor", "hospital"),
        "benefits": ("insurance", "health", "retirement", "401k", "dental", "vision"),
        "work": ("job", "employment", "career", "position", "role"),
        "remote": ("home", "telecommute", "virtual", "distance"),
        "policy": ("rule", "regulation", "procedure", "guideline", "requirement"),
        "hours": ("time", "schedule", "shift", "workday"),
        "employee": ("worker", "staff", "personnel", "team member"),
        "company": ("organization", "business", "employer", "firm"),
        "training": ("education", "learning", "development", "course"),
        "salary": ("pay", "compensation", "wage", "bonus", "payroll"),
        "expenses": ("reimbursement", "receipt", "travel", "allowance"),
        "review": ("performance", "evaluation", "appraisal", "feedback"),
        "equipment": ("laptop", "computer", "hardware", "device", "technology"),
    }
)

# Section topic -> keywords the section is expected to cover. Keys are matched
# against lower-cased section labels by word containment.
SECTION_KEYWORDS: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "vacation": ("vacation", "holiday", "holidays", "pto", "time", "off", "days", "leave", "annual"),
        "sick leave": ("sick", "illness", "medical", "doctor", "leave", "days", "health"),
        "benefits": ("benefits", "insurance", "health", "dental", "vision", "retirement", "401k"),
        "remote work": ("remote", "home", "telecommute", "virtual", "hybrid", "office"),
        "working hours": ("hours", "schedule", "shift", "overtime", "time", "workday"),
        "overview": ("company", "mission", "values", "history", "organization"),
        "performance": ("performance", "review", "evaluation", "goals", "feedback", "appraisal"),
        "training": ("training", "education", "learning", "development", "course", "certification"),
        "expense": ("expense", "expenses", "reimbursement", "receipt", "travel", "allowance"),
        "equipment": ("equipment", "laptop", "computer", "technology", "device", "hardware"),
        "security": ("security", "password", "data", "confidential", "access", "privacy"),
        "conduct": ("conduct", "behavior", "ethics", "harassment", "dress", "code"),
        "compensation": ("salary", "pay", "compensation", "bonus", "payroll", "raise"),
    }
)


def section_keywords_for(label: str | None) -> Tuple[str, ...]:
    """Keywords configured for the first topic whose words all occur in ``label``."""
    if not label:
        return ()
    label_words = set(label.lower().split())
    for topic, keywords in SECTION_KEYWORDS.items():
        if all(word in label_words for word in topic.split()):
            return keywords
    return ()
