"""FastAPI app that runs the generator and streams its log."""

import asyncio
import json
import logging
import sys
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from . import __version__

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Impact Synth API",
    description="Synthetic beneficiary session generation",
    version=__version__
)

# Enable CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000", "*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============ Request Models ============

class GenerateRequest(BaseModel):
    """Request to run a generation batch."""
    count: int = Field(1, ge=1, le=100)
    program_id: Optional[int] = None
    fund_id: Optional[int] = None
    save_json: bool = False


def build_generate_command(request: GenerateRequest) -> List[str]:
    """The child-process argv for a generation batch."""
    command = [sys.executable, "-m", "impact_synth", "generate", str(request.count)]
    # Positional arguments: "random" keeps a slot open for the ones after it
    trailing = [
        "random" if request.program_id is None else str(request.program_id),
        "random" if request.fund_id is None else str(request.fund_id),
        "true" if request.save_json else "false",
    ]
    while trailing and trailing[-1] in ("random", "false"):
        trailing.pop()
    return command + trailing


def sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


# ============ Health Check ============

@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "Impact Synth API",
        "version": __version__
    }


# ============ Generation ============

@app.post("/api/generate/stream")
async def generate_stream(request: GenerateRequest):
    """
    Run a generation batch as a child process and relay its output.

    Each output line becomes a `log` event; a final `complete` event carries
    the exit code. The child is killed if the client goes away.
    """
    command = build_generate_command(request)

    async def event_generator():
        logger.info("Starting generation: %s", " ".join(command[1:]))
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        try:
            yield sse({"type": "status", "status": "started", "pid": process.pid})
            async for raw in process.stdout:
                yield sse({"type": "log", "line": raw.decode(errors="replace").rstrip("\n")})
            exit_code = await process.wait()
            yield sse({"type": "complete", "exit_code": exit_code})
        finally:
            # Starlette cancels the response when the client disconnects
            if process.returncode is None:
                logger.info("Client disconnected, stopping generation (pid %s)", process.pid)
                process.kill()
                await process.wait()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
