"""Prompt templates for audit, reference analysis, specification and HTML generation"""

import json
import re
from typing import List, Optional

from design_chat.models.schemas import ReferenceAnalysis, UserResponses
from design_chat.core.responses import parse_multi_select

UI_UX_AUDIT_PROMPT = """You are a senior UI/UX expert conducting a visual UI/UX audit of a single webpage screenshot for redesign evaluation.

Scope and constraints:
- Evaluate only UI/UX design quality based on what is visible in the screenshot.
- Do not infer business performance, marketing strategy, or competitive positioning.
- Output only high-severity issues that can realistically harm usability, clarity, accessibility, or interaction confidence.

Check, in order: page understanding and primary action; obstructions (banners, popups, sticky bars);
clarity and hierarchy above the fold; affordances of interactive elements; visible accessibility barriers
(contrast, text size, dense blocks); design system and color consistency.

Selection and output rules:
- Produce maximum 5 issues, most severe first, without duplicates.
- Each issue must be understandable to a non-designer and reference a visible cue.

Output format (plain text only):
High Impact:
Issue description

Requirements:
- Plain text only (no markdown, no bullets, no extra sections)
- One issue per line under the "High Impact:" header
- Maximum 5 issues
- No introductions, explanations, or commentary"""

REFERENCE_WEBSITE_PROMPT = """Act as a Senior UI Designer and UI Engineer.

Extract specific UI/UX design elements from the reference website screenshot based strictly on the user's preferences.

Rules:
1. Return ONLY raw valid JSON. No markdown code blocks, no preamble, no postscript.
2. Only include fields that correspond to what the user likes.
3. Values must be implementation-ready (HEX codes for colors, CSS-style notes for layout).
4. Categorize colors by role: Primary, Secondary (numbered when several), Accent, Neutral.

Field mapping:
- Color/Palette -> colors: array of {"hex": "string", "type": "string"}
- Layout/Structure -> layout_notes: short string
- Typography/Font -> typography_notes: short string
- Buttons/Cards/Components -> components_liked: array of strings
- Animations/Interactions -> interaction_notes: short string
- Style/Vibe/Principle -> design_principles: array of strings

Required output schema:
{
  "website_url": "string",
  "user_likes_about_this": "string",
  "layout_notes": "string",
  "colors": [{"hex": "#HEXCODE", "type": "Primary | Secondary 1 | Accent | Neutral"}],
  "typography_notes": "string",
  "components_liked": ["string"],
  "interaction_notes": "string",
  "design_principles": ["string"]
}"""

SPECIFICATION_SYSTEM_PROMPT = (
    "You are a senior product designer and UX strategist. You write precise, implementation-ready "
    "webpage specifications as JSON. You never output HTML, CSS, or marketing copy, and you never "
    "invent specifics you were not given; mark unknowns as TBD."
)

SPECIFICATION_OUTPUT_FORMAT = """OUTPUT FORMAT (VALID JSON ONLY):
- Output must start with '{' and end with '}'. No markdown.
- Keys required:
1) page_overview: {page_type, primary_goal, secondary_goals, success_criteria}
2) audience_context: {audience_summary, key_pain_points, key_objections, how_design_addresses_them}
3) section_structure: [{section_name, purpose, content_intent, key_elements, CTA_behavior, mobile_vs_desktop_layout_behavior}]
4) design_guidelines: {color_usage, typography_direction, layout_patterns, spacing_hierarchy, visual_emphasis, accessibility_requirements}
5) functional_elements: {buttons, forms, validation_and_error_states, navigation_if_applicable, micro_interactions}
6) tone_and_experience: {tone, trust_builders, clarity_principles, urgency_use_if_applicable}
7) constraints_and_notes: {single_page_scope, performance_best_practices, assumptions_and_TBDs}
Return JSON only."""

NEW_WEBSITE_SPEC_TEMPLATE = """Generate a detailed webpage specification for a SINGLE webpage only, based on the structured inputs provided.

REQUIREMENTS:
- The specification must be strictly aligned to the selected page type and follow a mobile-first philosophy.
- Use the section blueprint for the selected page type as the base for section_structure.
- Reference websites: apply extracted design signals ONLY when they match what the user explicitly liked.
- WCAG 2.1 AA: contrast 4.5:1 for normal text and 3:1 for large text, 48px touch targets, visible focus states.

PAGE-TYPE SECTION BLUEPRINTS:
1) LANDING PAGE: Hero, Social Proof, Problem/Pain, Solution Overview, Benefits, How It Works, Feature Highlights, Testimonials, FAQ, Final CTA.
2) HOMEPAGE: Hero, What You Do, Primary Offerings, Why Choose Us, Proof, Featured Work, Process, FAQ, Footer CTA.
3) PRODUCT PAGE: Product Hero, Gallery, Key Benefits, Core Features, How It Works, Specs, Pricing, Reviews, FAQ, Final CTA.
4) SERVICE PAGE: Service Hero, Who It's For, Problems We Solve, Deliverables, Process, Proof, Packages, FAQ, Final CTA.
5) PORTFOLIO PAGE: Portfolio Hero, Work Gallery, Case Study Spotlights, Industries Served, Capabilities, Testimonials, Contact CTA.
6) OTHER: Propose a coherent single-page structure based on the user's goals.

{output_format}

INPUTS:
{inputs}"""

REDESIGN_SPEC_TEMPLATE = """Generate a detailed redesign specification for a SINGLE existing webpage, based on the structured inputs provided.

REQUIREMENTS:
- Fix every listed UI/UX audit issue and every problem the owner reported.
- When a screenshot of the current page is attached, keep what works and change what the issues call for.
- When existing page content is provided, reuse it as the content source instead of inventing copy.
- Reference websites: apply extracted design signals ONLY when they match what the user explicitly liked.
- Mobile-first, WCAG 2.1 AA: contrast 4.5:1 for normal text and 3:1 for large text, 48px touch targets.

{output_format}

INPUTS:
{inputs}"""

HTML_GENERATION_SYSTEM_PROMPT = (
    "You are an expert frontend designer and engineer. Translate the provided webpage specification "
    "into a production-grade single-file webpage with a bold, intentional aesthetic. Follow the "
    "specification exactly for structure, content intent, accessibility and behavior. Output real, "
    "working frontend code only."
)

HTML_GENERATION_TEMPLATE = """You are given a detailed {kind} specification below. This specification is the single source of truth.

IMPLEMENTATION RULES:
- Follow the section structure, purpose and content intent EXACTLY as defined in the specification.
- Respect all accessibility, mobile-first and performance rules defined in the specification.

OUTPUT & ASSET RULES:
- Output a complete, valid HTML document and nothing else. No markdown, no explanations.
- Use <img> tags with realistic placeholder image URLs in visually relevant sections.
- Embed all CSS inside <style> and JS inside <script>.
- Output must start with <!DOCTYPE html> and end with </html>.

Here is the specification to implement:
{specification}"""

_PAGE_TYPE_KEYWORDS = (
    ("home", "homepage"),
    ("landing", "landing page"),
    ("product", "product page"),
    ("service", "service page"),
    ("portfolio", "portfolio page"),
)


def build_reference_prompt(description: str) -> str:
    return f"{REFERENCE_WEBSITE_PROMPT}\n\nUser preferences for this website: {description}"


def map_page_type(page_type: Optional[str]) -> Optional[str]:
    """Blueprint name for a stored page type ("Other: FAQ Page" maps to "other")"""
    if not page_type or not page_type.strip():
        return None
    cleaned = re.sub(r"^Other:\s*", "", page_type.strip(), flags=re.IGNORECASE).lower()
    for keyword, blueprint in _PAGE_TYPE_KEYWORDS:
        if keyword in cleaned:
            return blueprint
    return "other"


def _format_references(reference_analyses: List[ReferenceAnalysis]) -> Optional[str]:
    if not reference_analyses:
        return None
    blocks = []
    for index, result in enumerate(reference_analyses, start=1):
        blocks.append(
            f"Reference {index}: {result.url}\n"
            f"What the user liked: {result.description}\n"
            f"Extracted design signals: {json.dumps(result.analysis, indent=2)}"
        )
    return "\n\n".join(blocks)


def _clean(value: Optional[str]) -> Optional[str]:
    return value.strip() if value and value.strip() else None


def build_new_website_spec_prompt(responses: UserResponses, reference_analyses: List[ReferenceAnalysis]) -> str:
    """User prompt for a new page; missing inputs are omitted"""
    inputs = []
    if _clean(responses.business):
        inputs.append(f"Business Information: {_clean(responses.business)}")
    if _clean(responses.audience):
        inputs.append(f"Target Audience: {_clean(responses.audience)}")
    if _clean(responses.goals):
        inputs.append(f"Top 3 Business Goals: {_clean(responses.goals)}")
    page_type = map_page_type(responses.page_type)
    if page_type:
        inputs.append(f"SELECTED PAGE TYPE: {page_type}")
        if page_type == "other":
            inputs.append(f"Page type as described by the user: {_clean(responses.page_type)}")
    if _clean(responses.brand_details):
        inputs.append(f"Style or Color Preferences: {_clean(responses.brand_details)}")
    references = _format_references(reference_analyses)
    if references:
        inputs.append(f"Reference Websites:\n{references}")

    return NEW_WEBSITE_SPEC_TEMPLATE.format(
        output_format=SPECIFICATION_OUTPUT_FORMAT,
        inputs="\n\n".join(inputs) or "No inputs provided."
    )


def build_redesign_spec_prompt(
    responses: UserResponses,
    audit_issues: List[str],
    reference_analyses: List[ReferenceAnalysis],
    has_screenshot: bool
) -> str:
    """User prompt for a redesign; the screenshot itself travels as an image attachment"""
    inputs = []
    if _clean(responses.redesign_current_url):
        inputs.append(f"Current Webpage URL: {_clean(responses.redesign_current_url)}")
    inputs.append(f"Screenshot of current page attached: {'yes' if has_screenshot else 'no'}")
    if _clean(responses.redesign_audience):
        inputs.append(f"Target Audience: {_clean(responses.redesign_audience)}")

    issues = parse_multi_select(responses.redesign_issues)
    if issues:
        inputs.append("Problems Reported by the Owner:\n" + "\n".join(f"- {issue}" for issue in issues))
    if audit_issues:
        inputs.append("UI/UX Audit Issues:\n" + "\n".join(f"- {issue}" for issue in audit_issues))

    if responses.redesign_reuse_content and _clean(responses.redesign_extracted_text):
        inputs.append(f"Existing Page Content (reuse it):\n{_clean(responses.redesign_extracted_text)}")
    elif responses.redesign_reuse_content:
        inputs.append("Reuse Existing Content: yes")
    else:
        inputs.append("Reuse Existing Content: no")

    references = _format_references(reference_analyses)
    if references:
        inputs.append(f"Reference Websites:\n{references}")

    return REDESIGN_SPEC_TEMPLATE.format(
        output_format=SPECIFICATION_OUTPUT_FORMAT,
        inputs="\n\n".join(inputs)
    )


def build_html_prompt(specification_json: str, redesign: bool = False) -> str:
    return HTML_GENERATION_TEMPLATE.format(
        kind="redesign" if redesign else "webpage",
        specification=specification_json
    )
