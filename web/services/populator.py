"""
Template population for the six report pages.

Pure string transformations: every function takes a cached template and
returns a new string. Templates carry sample values (a sample student name,
default bar percentages, a sample bucket heading) that act as the keys being
replaced, so a template edit that changes one of those samples silently stops
that substitution. Every miss is logged.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Mapping, Optional

from jinja2 import Environment
from markupsafe import escape

from web.schemas import Bucket, Career, ReportPayload
from web.services.asset_cache import AssetCache

logger = logging.getLogger(__name__)

FIRST_CAREER_PAGE = 3
CAREERS_PER_PAGE = 2

NO_SCORES_INSIGHT = "No RIASEC scores available."
UNKNOWN_TRAIT_INSIGHT = "Unable to generate specific RIASEC insight."
NO_RECOMMENDATION = "No recommendation available for this category."
FALLBACK_CARD_LOGO = "./assets/footer_logo.png"

# Trait code -> percentage printed in the page 2 template.
DEFAULT_TRAIT_SCORES = {"R": "72", "I": "56", "A": "91", "S": "76", "E": "62", "C": "48"}

SUMMARY_PATTERN = re.compile(r"Your profile shows that you enjoy structure[\s\S]*?and preparation pathways\.")
INSIGHT_MARKER = "<!-- RIASEC Insight will be dynamically inserted here -->"
BUCKET_HEADING_PATTERN = re.compile(r">\s*\d\.\s*Business Finance & Consulting\s*<")
CARD_REGION_PATTERN = re.compile(r'<div class="flex-grow flex flex-col gap-5">[\s\S]*<div class="bg-bg-prep')
EMPTY_CARD_REGION = '<div class="flex-grow"></div><div class="bg-bg-prep'
RECOMMENDATION_OPEN = (
    '<div class="bg-white rounded-xl p-4 h-full shadow-sm border border-slate-50 recommendation-content">'
)
RECOMMENDATION_PATTERN = re.compile(re.escape(RECOMMENDATION_OPEN) + r"[\s\S]*?</div>")

_jinja = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)

CAREER_CARD = _jinja.from_string("""
<div class="bg-white rounded-2xl p-4 shadow-soft">
    <div class="flex items-center mb-2">
        <div class="w-[6px] h-[28px] bg-header-blue rounded mr-4"></div>
        <div class="text-xl font-bold text-header-blue leading-none">
            {{ career.career_name }} <span class="text-lg font-bold ml-2 text-green-success">{{ choice }} Choice</span>
        </div>
    </div>
    <div class="text-[13px] mb-1 pl-5 text-gray-700 leading-normal">
        <strong class="text-gray-900">Why This Fits:</strong> {{ why_fit | safe }}
    </div>
    <div class="flex items-center mb-2 pl-5">
        <div class="font-bold text-[13px] mr-4 text-gray-900">Study Path:</div>
        <div class="flex items-center gap-2 flex-wrap">
        {%- for step in career.study_path -%}
            {% if not loop.first %}<div class="text-header-blue text-base font-bold"> / </div>{% endif %}
            <div class="bg-pill-bg px-3 py-1.5 rounded-md text-xs font-semibold text-slate-700">{{ step }}</div>
        {%- endfor -%}
        </div>
    </div>
    <div class="bg-yellow-bg rounded-lg p-3 border border-yellow-border">
        <div class="flex items-center text-header-blue font-bold text-xs mb-1.5">
            <span class="mr-2 text-sm">&#128161;</span>
            <span class="mr-1">Pro Tip by</span>
            <img src="{{ logo_src }}" alt="Logo" class="h-[14px] w-auto mx-1 inline-block align-middle">
            <span>Experts</span>
        </div>
        <div class="text-[11px] text-gray-600 pl-7 leading-relaxed">
            To excel in this career,
            <div class="flex flex-wrap items-baseline gap-1 mt-2">
                <h5 class="font-bold">top skills you must develop:</h5>
                {% for skill in career.recommended_skills or [] %}
                <span class="bg-pill-bg px-2 py-0.5 rounded-full text-xs font-semibold text-slate-700">{{ skill }}</span>
                {% endfor %}
            </div>
            <div class="flex flex-wrap items-baseline gap-1 mt-2">
                <h5 class="font-bold">Courses recommended for you:</h5>
                {% for course in career.recommended_courses or [] %}
                <span class="bg-pill-bg px-2 py-0.5 rounded-full text-xs font-semibold text-slate-700">{{ course }}</span>
                {% endfor %}
            </div>
        </div>
    </div>
</div>""")

CARD_SEPARATOR = '<div class="my-2"></div>'


def ordinal_choice(index: int) -> str:
    """Return the ordinal label for a zero-based card position."""
    labels = ["1st", "2nd", "3rd", "4th", "5th"]
    return labels[index] if index < len(labels) else f"{index + 1}th"


def format_score(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def trait_insight(scores: Mapping[str, float], descriptions: Mapping[str, str]) -> str:
    """Describe the highest-scoring trait; the first code wins a tie."""
    if not scores:
        return NO_SCORES_INSIGHT
    top_code = max(scores, key=lambda code: scores[code])
    return descriptions.get(top_code) or UNKNOWN_TRAIT_INSIGHT


def replace_literals(html: str, replacements: Dict[str, str], template_name: str) -> str:
    """
    Replace the first occurrence of each literal in a single pass.

    Replacement text is never rescanned, so a value that happens to equal
    another literal cannot be overwritten by a later substitution.
    """
    pending = dict(replacements)
    pattern = re.compile("|".join(re.escape(key) for key in sorted(replacements, key=len, reverse=True)))

    def substitute(match: re.Match) -> str:
        key = match.group(0)
        if key in pending:
            return pending.pop(key)
        return key

    result = pattern.sub(substitute, html)
    for key in pending:
        logger.warning("Literal %r not found in %s", key, template_name)
    return result


def _replace_pattern(html: str, pattern: re.Pattern, replacement: str, template_name: str) -> str:
    result, count = pattern.subn(lambda _: replacement, html, count=1)
    if not count:
        logger.warning("Pattern %r not found in %s", pattern.pattern[:60], template_name)
    return result


def populate_cover_page(
    html: str,
    payload: ReportPayload,
    student_id: Optional[str] = None,
    student_name: Optional[str] = None,
    template_name: str = "page1.html",
) -> str:
    name = student_name or payload.student_name or "Student Name"
    sid = student_id or payload.student_id or "N/A"
    return replace_literals(
        html,
        {
            "Vikrant Rao": str(escape(name)),
            'Student ID: <span class="font-bold">564890</span>': (
                f'Student ID: <span class="font-bold">{escape(sid)}</span>'
            ),
            "St. Joseph English School": str(escape(payload.school_name or "School Name")),
            "Grade 10 – CBSE": f"Grade {escape(payload.grade or 'N/A')} – {escape(payload.board or 'N/A')}",
        },
        template_name,
    )


def populate_profile_page(
    html: str,
    payload: ReportPayload,
    assets: AssetCache,
    template_name: str = "page2.html",
) -> str:
    scores = payload.trait_scores
    replacements = {INSIGHT_MARKER: trait_insight(scores, assets.trait_descriptions)}
    for code, default in DEFAULT_TRAIT_SCORES.items():
        value = format_score(scores.get(code) or 0)
        replacements[f"width: {default}%"] = f"width:{value}%;"
        replacements[f"<span>{default}%</span>"] = f"<span>{value}%</span>"
    html = replace_literals(html, replacements, template_name)
    # Inserted last so caller text is never matched as a template literal.
    return _replace_pattern(html, SUMMARY_PATTERN, payload.summary_paragraph or "", template_name)


def render_career_card(career: Career, index: int, assets: AssetCache) -> str:
    """
    Build the HTML card for one career.

    Raises:
        KeyError: The career is not in the catalog. Enrichment is expected to
            have resolved every career that reaches this point.
    """
    entry = assets.careers[career.career_name]
    return CAREER_CARD.render(
        career=career,
        choice=ordinal_choice(index),
        why_fit=entry.get("whyFit", ""),
        logo_src=assets.card_logo_src or FALLBACK_CARD_LOGO,
    )


def populate_career_page(
    html: str,
    bucket: Optional[Bucket],
    bucket_index: int,
    assets: AssetCache,
    template_name: str = "page3.html",
) -> str:
    careers: List[Career] = bucket.top_careers[:CAREERS_PER_PAGE] if bucket else []
    if not bucket or not bucket.bucket_name or not careers:
        return _replace_pattern(html, CARD_REGION_PATTERN, EMPTY_CARD_REGION, template_name)

    heading = f"> {bucket_index + 1}. {escape(bucket.bucket_name)} <"
    html = _replace_pattern(html, BUCKET_HEADING_PATTERN, heading, template_name)

    cards = CARD_SEPARATOR.join(
        render_career_card(career, index, assets) for index, career in enumerate(careers)
    )
    html = _replace_pattern(
        html,
        CARD_REGION_PATTERN,
        f'<div class="flex-grow flex flex-col">{cards}<div class="bg-bg-prep',
        template_name,
    )

    recommendation = assets.recommendations.get(bucket.bucket_name) or NO_RECOMMENDATION
    return _replace_pattern(
        html,
        RECOMMENDATION_PATTERN,
        f'{RECOMMENDATION_OPEN}<p class="text-[12px] text-gray-700 leading-snug line-clamp-5">'
        f"{recommendation}</p></div>",
        template_name,
    )


def page_number(template_name: str) -> int:
    """``'page4.html'`` -> ``4``."""
    match = re.fullmatch(r"page(\d+)\.html", template_name)
    if not match:
        raise ValueError(f"Not a report page template: {template_name}")
    return int(match.group(1))


def populate_page(
    template_name: str,
    payload: ReportPayload,
    assets: AssetCache,
    student_id: Optional[str] = None,
    student_name: Optional[str] = None,
) -> str:
    """Return the populated HTML for one page of the report."""
    html = assets.templates[template_name]
    number = page_number(template_name)
    if number == 1:
        return populate_cover_page(html, payload, student_id, student_name, template_name)
    if number == 2:
        return populate_profile_page(html, payload, assets, template_name)

    bucket_index = number - FIRST_CAREER_PAGE
    buckets = payload.top_buckets
    bucket = buckets[bucket_index] if bucket_index < len(buckets) else None
    return populate_career_page(html, bucket, bucket_index, assets, template_name)
