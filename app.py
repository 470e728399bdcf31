from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse, Response
from contextlib import asynccontextmanager
from typing import Optional
from pydantic import BaseModel

from models.errors import ScriptLockedError
from nlp.prompts import ScriptLength
from orchestrator.exports import narration_filename, part_filename
from orchestrator.session import StudioController
from tts.voices import VOICES
from tts.wav import AUDIO_WAV_MIME
from loguru import logger
from dotenv import load_dotenv

load_dotenv()

# Pydantic models for API requests
class AnalyzeRequest(BaseModel):
    channel: str

class SelectIdeaRequest(BaseModel):
    idea_id: Optional[str] = None
    title: Optional[str] = None

class ReferenceScriptBody(BaseModel):
    topic: str
    transcript: str
    match_length: bool = False

class VoiceStudioRequest(BaseModel):
    title: str
    script: str

class EditScriptRequest(BaseModel):
    content: str

class ScriptLengthRequest(BaseModel):
    length: ScriptLength

class AudioRequest(BaseModel):
    voice: Optional[str] = None

# Global instances
controller: Optional[StudioController] = None

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    global controller

    logger.info("Starting TubeGenius studio...")
    controller = StudioController()
    await controller.list_projects()  # creates tables

    yield

    logger.info("Shutting down TubeGenius studio...")
    controller.reset()
    await controller.store.close()

app = FastAPI(
    title="TubeGenius Studio",
    description="Channel analysis, idea generation, script streaming and voice-over",
    version="1.0.0",
    lifespan=lifespan
)


def _state():
    return controller.session.snapshot()


def _require_no_notice():
    notice = controller.session.notice
    if notice:
        raise HTTPException(status_code=502, detail=notice.message)


@app.get("/session")
async def get_session():
    """Current studio state"""
    return _state()

@app.delete("/session")
async def reset_session():
    """Start over: drop profile, ideas, script and audio"""
    controller.reset()
    return _state()

@app.delete("/notice")
async def dismiss_notice():
    controller.dismiss_notice()
    return _state()

@app.post("/analyze")
async def analyze_channel(request: AnalyzeRequest):
    """Analyze a channel's style"""
    profile = await controller.analyze(request.channel)
    if not profile:
        _require_no_notice()
    return _state()

@app.post("/ideas")
async def generate_ideas():
    """Generate video ideas for the active profile"""
    await controller.generate_ideas()
    _require_no_notice()
    return _state()

@app.put("/script/length")
async def set_script_length(request: ScriptLengthRequest):
    controller.set_script_length(request.length.value)
    return _state()

@app.post("/script/idea", status_code=202)
async def write_from_idea(request: SelectIdeaRequest):
    """Start streaming a script for a generated idea or a custom title"""
    if controller.session.profile is None:
        raise HTTPException(status_code=409, detail="Analyze a channel or load a project first")

    if request.title:
        controller.start_script(controller.write_custom_title(request.title))
    elif request.idea_id:
        idea = next((i for i in controller.session.ideas if i.id == request.idea_id), None)
        if idea is None:
            raise HTTPException(status_code=404, detail="Idea not found")
        controller.start_script(controller.select_idea(idea))
    else:
        raise HTTPException(status_code=422, detail="Pass idea_id or title")
    return _state()

@app.post("/script/reference", status_code=202)
async def write_from_reference(request: ReferenceScriptBody):
    """Start streaming a script styled after a reference transcript"""
    controller.start_script(
        controller.create_from_reference(request.topic, request.transcript, request.match_length)
    )
    return _state()

@app.post("/script/voice")
async def open_voice_studio(request: VoiceStudioRequest):
    """Use a ready-made script for voice-over"""
    controller.open_voice_studio(request.title, request.script)
    return _state()

@app.post("/script/regenerate", status_code=202)
async def regenerate_script():
    idea = controller.session.selected_idea
    if idea is None:
        raise HTTPException(status_code=409, detail="No script open")
    if not idea.can_regenerate:
        await controller.regenerate_script()
        raise HTTPException(status_code=409, detail=controller.session.notice.message)
    controller.start_script(controller.regenerate_script())
    return _state()

@app.get("/script")
async def get_script():
    s = controller.session
    return {
        "content": s.script.buffer,
        "state": s.script.state.value,
        "generating": s.script.generating,
        "error": s.script.error,
    }

@app.put("/script")
async def edit_script(request: EditScriptRequest):
    try:
        controller.edit_script(request.content)
    except ScriptLockedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return await get_script()

@app.delete("/script")
async def close_script():
    """Close the script view, releasing all generated audio"""
    controller.close_script()
    return _state()

@app.get("/script/download", response_class=PlainTextResponse)
async def download_script():
    s = controller.session
    if s.selected_idea is None or not s.script.buffer.strip():
        raise HTTPException(status_code=404, detail="No script to download")
    filename = narration_filename(s.selected_idea.title)
    return PlainTextResponse(
        s.script.buffer,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )

@app.post("/metadata")
async def generate_metadata():
    """SEO description, tags, hashtags and pinned comment for the script"""
    metadata = await controller.generate_metadata()
    if metadata is None:
        _require_no_notice()
        raise HTTPException(status_code=409, detail="Write a script first")
    return metadata.model_dump(mode="json", by_alias=True)

@app.get("/voices")
async def list_voices():
    return [voice.model_dump(mode="json") for voice in VOICES]

@app.post("/audio")
async def generate_audio(request: AudioRequest):
    """Split the script and synthesize every segment"""
    await controller.generate_audio(request.voice)
    _require_no_notice()
    return _state()["audio"]

@app.post("/audio/parts/{index}/regenerate")
async def regenerate_audio(index: int):
    current = next((p for p in controller.session.parts if p.index == index), None)
    if current is None:
        raise HTTPException(status_code=404, detail=f"No audio segment {index}")
    if current.is_audio_loading:
        raise HTTPException(status_code=409, detail=f"Audio segment {index} is still generating")
    part = await controller.regenerate_audio(index)
    if part is None:
        raise HTTPException(status_code=404, detail=f"No audio segment {index}")
    return part.model_dump() | {"status": part.status}

@app.get("/audio/parts/{index}")
async def download_audio(index: int):
    audio = controller.session.audio
    data = audio.audio_for(index)
    if data is None:
        raise HTTPException(status_code=404, detail="Audio not ready")
    part = audio.parts[index]
    return Response(
        content=data,
        media_type=audio.pool.mime(part.audio_url) or AUDIO_WAV_MIME,
        headers={"Content-Disposition": f'attachment; filename="{part_filename(index)}"'}
    )

@app.get("/projects")
async def list_projects():
    projects = await controller.list_projects()
    return [p.model_dump(mode="json", by_alias=True) for p in projects]

@app.post("/projects", status_code=201)
async def save_project():
    project = await controller.save_project()
    if project is None:
        raise HTTPException(status_code=409, detail=controller.session.notice.message)
    return project.model_dump(mode="json", by_alias=True)

@app.post("/projects/{project_id}/load")
async def load_project(project_id: str):
    project = await controller.load_project(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return _state()

@app.delete("/projects/{project_id}")
async def delete_project(project_id: str):
    if not await controller.delete_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")
    return {"deleted": project_id}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=5317)
