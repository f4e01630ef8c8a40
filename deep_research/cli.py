"""Command-line interface for deep research."""

import asyncio
import json
from typing import Annotated

import typer

from .config.factory import create_feedback_generator, create_from_profile, create_llm_provider
from .config.loader import load_config, load_profiles
from .errors import DeepResearchError
from .sse import format_sse

app = typer.Typer(
    name="deep-research",
    help="Recursive web research with an LLM.",
    add_completion=False,
)

OUTPUT_FORMATS = ("text", "json", "sse")


def describe_step(step) -> str | None:
    """One-line summary of a progress event, or None for noisy partial events."""
    if step.type == "generated_query":
        return f"[{step.node_id}] query: {step.query}"
    if step.type == "searching":
        return f"[{step.node_id}] searching: {step.query}"
    if step.type == "search_complete":
        return f"[{step.node_id}] found {len(step.urls)} results"
    if step.type == "node_complete" and step.result is not None:
        return (
            f"[{step.node_id}] {len(step.result.learnings)} learnings, "
            f"{len(step.result.follow_up_questions)} follow-up questions"
        )
    if step.type == "error":
        return f"[{step.node_id}] error: {step.message}"
    if step.type == "complete":
        return f"Research complete: {len(step.learnings)} learnings"
    return None


@app.command()
def research(
    query: Annotated[str, typer.Argument(help="What to research")],
    breadth: Annotated[
        int,
        typer.Option("--breadth", "-b", help="Sub-queries at the first level (halves per level)"),
    ] = None,
    depth: Annotated[
        int,
        typer.Option("--depth", "-d", help="Maximum recursion depth"),
    ] = None,
    language: Annotated[
        str,
        typer.Option("--language", "-l", help="Response language code"),
    ] = "en",
    search_language: Annotated[
        str,
        typer.Option("--search-language", help="Language code for search queries"),
    ] = None,
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Configuration profile"),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: text, json or sse"),
    ] = "text",
    report: Annotated[
        bool,
        typer.Option("--report/--no-report", help="Write a final report"),
    ] = True,
):
    """
    Research a topic recursively and write a report.

    Examples:

        # Default profile (OpenAI + Tavily)
        deep-research research "solid state battery startups"

        # Wider and deeper, answers in German
        deep-research research "EU AI act enforcement" -b 4 -d 3 -l de

        # Offline run with mock providers, raw SSE frames
        deep-research research "anything" -p test --format sse --no-report
    """
    if output_format not in OUTPUT_FORMATS:
        typer.echo(f"Error: Format must be one of: {', '.join(OUTPUT_FORMATS)}", err=True)
        raise typer.Exit(1)

    asyncio.run(_research_async(
        query=query,
        breadth=breadth,
        depth=depth,
        language=language,
        search_language=search_language,
        profile=profile,
        output_format=output_format,
        write_report=report,
    ))


async def _research_async(
    query: str,
    breadth: int | None,
    depth: int | None,
    language: str,
    search_language: str | None,
    profile: str | None,
    output_format: str,
    write_report: bool,
):
    """Async implementation of research."""
    config = load_config(profile)
    llm_provider, search_provider, researcher, synthesizer = create_from_profile(config)

    def on_progress(step):
        if output_format == "sse":
            typer.echo(format_sse(step), nl=False)
        elif output_format == "text":
            line = describe_step(step)
            if line:
                typer.echo(line)

    async with llm_provider, search_provider:
        result = await researcher.research(
            query=query,
            breadth=breadth or config.research.breadth,
            max_depth=depth or config.research.depth,
            language=language,
            search_language=search_language,
            on_progress=on_progress,
        )

        report_text = None
        if write_report:
            try:
                report_text = await synthesizer.write(query, result.learnings, language)
            except DeepResearchError as e:
                typer.echo(f"Error writing report: {e}", err=True)
                raise typer.Exit(1)

    if output_format == "json":
        output = {
            "learnings": [learning.model_dump() for learning in result.learnings],
            "report": report_text,
        }
        typer.echo(json.dumps(output, indent=2, ensure_ascii=False))
    elif output_format == "text" and report_text:
        typer.echo()
        typer.echo(report_text)


@app.command()
def feedback(
    query: Annotated[str, typer.Argument(help="Research query to clarify")],
    num_questions: Annotated[
        int,
        typer.Option("--num-questions", "-n", help="Maximum number of questions"),
    ] = 3,
    language: Annotated[
        str,
        typer.Option("--language", "-l", help="Response language code"),
    ] = "en",
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Configuration profile"),
    ] = None,
):
    """
    Ask clarifying questions before researching.

    Examples:

        deep-research feedback "quantum error correction" -n 5
    """
    asyncio.run(_feedback_async(query, num_questions, language, profile))


async def _feedback_async(query: str, num_questions: int, language: str, profile: str | None):
    """Async implementation of feedback."""
    config = load_config(profile)
    llm_provider = create_llm_provider(config.llm)
    generator = create_feedback_generator(llm_provider, temperature=config.llm.temperature)

    async with llm_provider:
        try:
            questions = await generator.generate(query, num_questions, language)
        except DeepResearchError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)

    for i, question in enumerate(questions, 1):
        typer.echo(f"{i}. {question}")


@app.command()
def profiles():
    """List available configuration profiles."""
    typer.echo("Available profiles:\n")
    for name, profile in load_profiles().items():
        typer.echo(f"  {name}")
        typer.echo(f"    LLM: {profile.llm.provider} ({profile.llm.model or 'default model'})")
        typer.echo(f"    Search: {profile.web_search.provider}")
        typer.echo(
            f"    Breadth/depth: {profile.research.breadth}/{profile.research.depth}, "
            f"concurrency: {profile.research.concurrency_limit}"
        )
        typer.echo()


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
