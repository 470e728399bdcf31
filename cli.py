import typer
import asyncio
import os
from pathlib import Path
from typing import Optional
from pydantic import ValidationError
from models.schemas import ChannelProfile, GeneratedScript
from nlp.prompts import ScriptLength
from orchestrator.audio import AudioPipeline
from orchestrator.exports import export_markdown
from orchestrator.session import StudioController
from orchestrator.streaming import StreamState
from tts.voices import VOICES, DEFAULT_VOICE
from loguru import logger
from dotenv import load_dotenv

load_dotenv()

CONTENT_ROOT = os.getenv("CONTENT_ROOT", "./data")

app = typer.Typer(
    name="tubegenius",
    help="Channel analysis, idea generation, script writing and voice-over"
)

# Initialized in the callback
controller: Optional[StudioController] = None

@app.callback()
def initialize():
    """Initialize the application components"""
    global controller

    # Set up logging
    logger.add(f"{CONTENT_ROOT}/logs/cli.log", rotation="1 day", level="INFO")

    controller = StudioController()


def _echo_profile(profile: ChannelProfile):
    typer.echo(f"📺 {profile.channel_name}")
    typer.echo(f"  Niche: {profile.niche}")
    typer.echo(f"  Tone: {', '.join(profile.tone)}")
    typer.echo(f"  Avg duration: {profile.avg_duration}")
    typer.echo(f"  Hook style: {profile.hook_style}")
    typer.echo(f"  Storytelling: {profile.storytelling_style}")
    typer.echo(f"  Audience: {profile.audience_demographic}")
    typer.echo(f"  Uploads: {profile.upload_schedule}")
    if profile.recurring_keywords:
        typer.echo(f"  Keywords: {', '.join(profile.recurring_keywords)}")
    for metric in profile.performance_metrics:
        typer.echo(f"  {metric.name:<20} {metric.value:>5.0f}/{metric.full_mark:.0f}")


def _fail_with_notice():
    notice = controller.session.notice
    typer.echo(f"❌ {notice.message if notice else 'Operation failed'}", err=True)
    raise typer.Exit(1)


@app.command()
def analyze(
    channel: str = typer.Argument(..., help="Channel name, handle or URL"),
    ideas: bool = typer.Option(True, "--ideas/--no-ideas", help="Also generate video ideas"),
    save: bool = typer.Option(False, "--save", "-s", help="Save the result as a project")
):
    """Analyze a channel's style and propose video ideas"""
    async def run_analyze():
        typer.echo(f"🔍 Analyzing {channel}...")
        profile = await controller.analyze(channel)
        if not profile:
            _fail_with_notice()
        _echo_profile(profile)

        if ideas:
            typer.echo("\n💡 Generating ideas...")
            generated = await controller.generate_ideas()
            if controller.session.notice:
                _fail_with_notice()
            if not generated:
                typer.echo("No ideas came back. Try again later.")
            for i, idea in enumerate(generated, 1):
                typer.echo(f"{i}. {idea.title} (CTR: {idea.predicted_ctr})")
                typer.echo(f"   {idea.hook}")

        if save:
            project = await controller.save_project()
            typer.echo(f"\n💾 Saved project {project.name} (id: {project.id})")

    asyncio.run(run_analyze())


@app.command()
def ideas(
    project: str = typer.Argument(..., help="Saved project id"),
    save: bool = typer.Option(True, "--save/--no-save", help="Store the new ideas in the project")
):
    """Generate a fresh batch of ideas for a saved project"""
    async def run_ideas():
        loaded = await controller.load_project(project)
        if not loaded:
            _fail_with_notice()

        typer.echo(f"💡 Generating ideas for {loaded.name}...")
        generated = await controller.generate_ideas()
        if controller.session.notice:
            _fail_with_notice()
        if not generated:
            typer.echo("No ideas came back. Try again later.")
            return
        for i, idea in enumerate(generated, 1):
            typer.echo(f"{i}. {idea.title} (CTR: {idea.predicted_ctr})")
            typer.echo(f"   {idea.hook}")

        if save:
            saved = await controller.save_project()
            typer.echo(f"\n💾 Updated project {saved.name} (id: {saved.id})")

    asyncio.run(run_ideas())


def _stream_to_stdout():
    printed = 0

    def echo_increment(buffer: str):
        nonlocal printed
        typer.echo(buffer[printed:], nl=False)
        printed = len(buffer)

    return controller.session.script.subscribe(echo_increment)


def _finish_script(state: Optional[StreamState], out: Optional[Path]):
    typer.echo()
    if state is not StreamState.COMPLETE:
        _fail_with_notice()
    if out:
        path = controller.export_script(str(out))
        typer.echo(f"✅ Saved {path}")


@app.command()
def write(
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Saved project id"),
    idea: Optional[int] = typer.Option(None, "--idea", "-i", help="1-based idea number from the project"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Custom title (uses the project profile)"),
    topic: Optional[str] = typer.Option(None, "--topic", help="Topic for reference-based writing"),
    reference: Optional[Path] = typer.Option(None, "--reference", "-r", help="Reference transcript file"),
    match_length: bool = typer.Option(False, "--match-length", help="Match the reference word count"),
    length: str = typer.Option("standard", "--length", "-l", help="short, standard, long or extensive"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Directory to save the narration to")
):
    """Stream a narration script to the terminal"""
    async def run_write():
        try:
            controller.set_script_length(ScriptLength[length.upper()].value)
        except KeyError:
            typer.echo(f"Unknown length '{length}'", err=True)
            raise typer.Exit(1)
        unsubscribe = _stream_to_stdout()
        try:
            if topic and reference:
                transcript = reference.read_text(encoding="utf-8")
                state = await controller.create_from_reference(topic, transcript, match_length)
            elif project:
                loaded = await controller.load_project(project)
                if not loaded:
                    _fail_with_notice()
                if title:
                    state = await controller.write_custom_title(title)
                elif idea and 1 <= idea <= len(loaded.ideas):
                    state = await controller.select_idea(loaded.ideas[idea - 1])
                else:
                    typer.echo(f"Pick --idea 1..{len(loaded.ideas)} or pass --title", err=True)
                    raise typer.Exit(1)
            else:
                typer.echo("Pass --project with --idea/--title, or --topic with --reference", err=True)
                raise typer.Exit(1)
        finally:
            unsubscribe()
        _finish_script(state, out)

    asyncio.run(run_write())


@app.command()
def voiceover(
    script: Path = typer.Argument(..., help="Plain-text narration file"),
    voice: str = typer.Option(DEFAULT_VOICE.name, "--voice", "-v", help="Voice name"),
    out: Path = typer.Option(Path(CONTENT_ROOT) / "voice", "--out", "-o", help="Directory for part_N_voiceover.wav files"),
    concurrency: int = typer.Option(1, "--concurrency", help="Segments synthesized at once")
):
    """Synthesize a script into per-segment WAV files"""
    async def run_voiceover():
        pipeline = AudioPipeline(controller.client, concurrency=concurrency, export_dir=str(out))
        studio = StudioController(client=controller.client, store=controller.store, audio=pipeline)
        studio.open_voice_studio(script.stem, script.read_text(encoding="utf-8"))

        typer.echo(f"🎙️ Generating voice-over with {voice}...")
        parts = await studio.generate_audio(voice)
        if studio.session.notice:
            typer.echo(f"❌ {studio.session.notice.message}", err=True)
            raise typer.Exit(1)

        failed = 0
        for part in parts:
            icon = "✅" if part.status == "ready" else "❌"
            failed += part.status != "ready"
            typer.echo(f"  {icon} Part {part.index + 1} ({len(part.text.split())} words)")
        typer.echo(f"Saved to {out}")
        studio.close_script()
        if failed:
            raise typer.Exit(1)

    asyncio.run(run_voiceover())


@app.command()
def render(
    script: Path = typer.Argument(..., help="Structured script JSON (title and sections)"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Directory to save the markdown to")
):
    """Print a sectioned script, optionally exporting it as markdown"""
    try:
        structured = GeneratedScript.model_validate_json(script.read_text(encoding="utf-8"))
    except ValidationError as e:
        typer.echo(f"❌ Not a structured script: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"🎬 {structured.title}\n")
    typer.echo(structured.to_plain_text())
    if out:
        path = export_markdown(structured, str(out))
        typer.echo(f"\n✅ Saved {path}")


@app.command()
def voices():
    """List available voices"""
    for voice in VOICES:
        typer.echo(f"• {voice.name:<10} {voice.gender.value:<7} {voice.style}")


@app.command()
def projects():
    """List saved projects"""
    async def run_list():
        saved = await controller.list_projects()
        if not saved:
            typer.echo("No saved projects.")
            return
        for project in saved:
            typer.echo(f"• {project.name} (id: {project.id}) - {len(project.ideas)} ideas")

    asyncio.run(run_list())


@app.command()
def delete_project(
    project_id: str = typer.Argument(..., help="Project id")
):
    """Delete a saved project"""
    async def run_delete():
        if await controller.delete_project(project_id):
            typer.echo(f"🗑️ Deleted {project_id}")
        else:
            typer.echo(f"❌ No project {project_id}", err=True)
            raise typer.Exit(1)

    asyncio.run(run_delete())


if __name__ == "__main__":
    app()
