"""
PitchDeck AI - HTTP Server

FastAPI implementation exposing question generation, pitch deck generation
and the raw-output recovery pipeline.
"""

import shutil
import tempfile
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import BaseModel
from starlette.background import BackgroundTask

from pitchdeck import __version__
from pitchdeck.api_client import BaseModelClient, get_client
from pitchdeck.config import SERVER_HOST, SERVER_PORT
from pitchdeck.pitch_deck_generator import PitchDeckError, PitchDeckGenerator
from pitchdeck.question_generator import QuestionGenerationError, QuestionGenerator
from pitchdeck.recovery import recover
from pitchdeck.schemas import SchemaVariant

PPTX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

# ============================================================
# Data Models
# ============================================================

class BusinessDataRequest(BaseModel):
    data: Union[List[Dict[str, Any]], Dict[str, Any]]
    model: Optional[str] = None

class RecoverRequest(BaseModel):
    text: str

# ============================================================
# Dependencies
# ============================================================

def get_model_client() -> BaseModelClient:
    """Model client for the current request (overridable in tests)."""
    return get_client()

# ============================================================
# App
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    print(f"PitchDeck AI server starting on {SERVER_HOST}:{SERVER_PORT}...")
    yield
    # Shutdown
    print("Server shutting down...")

app = FastAPI(
    title="PitchDeck AI",
    version=__version__,
    description="Business analysis decks and strategic questions from LLM output.",
    lifespan=lifespan,
)

# CORS (Allow all for local development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================
# API Endpoints
# ============================================================

@app.get("/api/v1/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "timestamp": datetime.now().isoformat()}

@app.post("/api/v1/questions")
async def generate_questions(
    request: BusinessDataRequest,
    client: BaseModelClient = Depends(get_model_client),
):
    """Generate ten strategic questions for the submitted business data."""
    if request.model:
        client.config.model_name = request.model
    generator = QuestionGenerator(client=client)
    try:
        questions = await generator.generate_questions(request.data)
    except QuestionGenerationError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return questions.to_dict()

@app.post("/api/v1/pitch-deck")
async def generate_pitch_deck(
    request: BusinessDataRequest,
    client: BaseModelClient = Depends(get_model_client),
):
    """Generate a .pptx analysis deck and stream it back."""
    if request.model:
        client.config.model_name = request.model
    generator = PitchDeckGenerator(client=client)
    output_dir = tempfile.mkdtemp(prefix="pitchdeck_")
    try:
        path = await generator.generate_pitch_deck(request.data, output_dir)
    except PitchDeckError as e:
        shutil.rmtree(output_dir, ignore_errors=True)
        raise HTTPException(status_code=502, detail=str(e))

    return FileResponse(
        path,
        media_type=PPTX_MEDIA_TYPE,
        filename=path.name,
        background=BackgroundTask(shutil.rmtree, output_dir, ignore_errors=True),
    )

@app.post("/api/v1/recover/{variant}")
async def recover_document(variant: str, request: RecoverRequest):
    """Run the recovery pipeline on raw model output (debugging aid)."""
    try:
        schema_variant = SchemaVariant(variant)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown variant: {variant}")

    result = recover(request.text, schema_variant)
    return {
        "document": result.document.to_dict(),
        "diagnostics": result.diagnostics(),
    }


def start_server(host: str = SERVER_HOST, port: int = SERVER_PORT) -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=host, port=port)
