"""Prompt templates shared by the research components."""

from __future__ import annotations

import json
from datetime import date

LANGUAGE_NAMES = {
    "en": "English",
    "zh": "Chinese",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "nl": "Dutch",
    "ru": "Russian",
    "ja": "Japanese",
    "ko": "Korean",
    "ar": "Arabic",
}

SYSTEM_PROMPT_TEMPLATE = """You are an expert researcher. Today is {today}. Follow these instructions when responding:
- You may be asked to research subjects that are after your knowledge cutoff; assume the user is right when presented with news.
- The user is a highly experienced analyst, no need to simplify it, be as detailed as possible and make sure your response is correct.
- Be highly organized.
- Suggest solutions that the user did not think about.
- Be proactive and anticipate the user's needs.
- Treat the user as an expert in all subject matter.
- Mistakes erode trust, so be accurate and thorough.
- Provide detailed explanations, the user is comfortable with lots of detail.
- Value good arguments over authorities; the source is irrelevant.
- Consider new technologies and contrarian ideas, not just the conventional wisdom.
- You may use high levels of speculation or prediction, just flag it for the user."""

QUERY_PROMPT_TEMPLATE = """Given the following prompt from the user, generate a list of SERP queries to research the topic. Return a maximum of {num_queries} queries, but feel free to return less if the original prompt is clear. Make sure each query is unique and not similar to each other: <prompt>{query}</prompt>"""

QUERY_LEARNINGS_TEMPLATE = """Here are some learnings from previous research, use them to generate more specific queries:
<learnings>
{learnings}
</learnings>"""

RESULT_PROMPT_TEMPLATE = """Given the following contents from a SERP search for the query <query>{query}</query>, generate a list of learnings from the contents. Return a maximum of {num_learnings} learnings, but feel free to return less if the contents are clear. Make sure each learning is unique and not similar to each other. The learnings should be concise and to the point, as detailed and information dense as possible. Make sure to include any entities like people, places, companies, products, things, etc in the learnings, as well as any exact metrics, numbers, or dates. Every learning must carry the url of the content it was taken from. The learnings will be used to research the topic further."""

FEEDBACK_PROMPT_TEMPLATE = """Given the following query from the user, ask some follow up questions to clarify the research direction. Return a maximum of {num_questions} questions, but feel free to return less if the original query is clear: <query>{query}</query>"""

REPORT_PROMPT_TEMPLATE = """Given the following prompt from the user, write a final report on the topic using the learnings from research. Make it as detailed as possible, aim for 3 or more pages, include ALL the learnings from research:

<prompt>{prompt}</prompt>

Here are all the learnings from previous research:

<learnings>
{learnings}
</learnings>"""

CITATION_RULES = """Cite learnings with their index in square brackets, e.g. [1] or [2][5], right after the statement they support. Do not put URLs in the body of the report; the list of sources is appended separately. Write the report in Markdown."""

FOLLOW_UP_QUERY_TEMPLATE = """Previous research goal: {research_goal}
Follow-up research directions: {directions}"""


def system_prompt(today: date | None = None) -> str:
    """System prompt used for every research call."""
    return SYSTEM_PROMPT_TEMPLATE.format(today=(today or date.today()).isoformat())


def language_name(code: str) -> str:
    """English name of a language code, or the code itself if unknown."""
    return LANGUAGE_NAMES.get(code.split("-")[0].lower(), code)


def language_prompt(language: str) -> str:
    return f"Respond in {language_name(language)}."


def search_language_prompt(search_language: str) -> str:
    return (
        f"Write the search queries in {language_name(search_language)}, "
        "regardless of the language of the rest of the response."
    )


def schema_prompt(schema: dict) -> str:
    return f"You MUST respond in JSON matching this JSON schema: {json.dumps(schema)}"


def follow_up_query(research_goal: str, follow_up_questions: list[str]) -> str:
    """Query for a recursive call, built from a node's goal and follow-ups."""
    directions = "".join(f"\n{question}" for question in follow_up_questions)
    return FOLLOW_UP_QUERY_TEMPLATE.format(
        research_goal=research_goal,
        directions=directions,
    ).strip()


def join_prompt(*parts: str) -> str:
    """Join non-empty prompt sections with blank lines."""
    return "\n\n".join(part for part in parts if part)
