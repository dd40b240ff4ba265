"""FastAPI web adapter for the ARM emulator."""

import base64
import binascii
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from armemu import run_program, RunOptions
from armemu.runner import MAX_TRACE_ROWS


# Constants
MAX_IMAGE_SIZE = 1024 * 1024  # 1MB
MAX_MEMORY_SIZE = 16 * 1024 * 1024
MAX_STEPS = 1_000_000
WORD_MAX = 0xFFFFFFFF


# Request/Response models
class RunOptionsModel(BaseModel):
    memory_size: int = Field(default=0x10000, ge=16, le=MAX_MEMORY_SIZE)
    start_address: Optional[int] = Field(default=None, ge=0, le=WORD_MAX)
    max_steps: int = Field(default=100_000, ge=1, le=MAX_STEPS)
    trace: bool = False
    trace_watch: list[int] = Field(default_factory=list)
    trace_include_registers: bool = True
    max_trace_rows: int = Field(default=10_000, ge=0, le=MAX_TRACE_ROWS)
    breakpoints: list[int] = Field(default_factory=list)
    initial_memory: dict[str, int] = Field(default_factory=dict)


class RunRequest(BaseModel):
    image: str  # base64-encoded program image
    options: Optional[RunOptionsModel] = None


class RunResponse(BaseModel):
    status: str
    output_text: str
    steps_executed: int
    final_state: dict
    trace_watch: list[int]
    trace: list[dict]
    watched: dict[str, int]
    debug_registers: str
    debug_status: str
    elapsed_seconds: float
    steps_per_second: float
    trace_truncated: bool = False
    error: Optional[dict] = None


# Create FastAPI app
app = FastAPI(
    title="ARM Emulator",
    description="Web API for executing 32-bit ARM program images with tracing",
    version="0.1.0",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/api/run", response_model=RunResponse)
async def run_code(request: RunRequest):
    """Execute an ARM program image.

    Args:
        request: Base64 image and execution options

    Returns:
        Execution result with output, trace, and final state
    """
    try:
        image = base64.b64decode(request.image, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="Image is not valid base64")

    # Validate image size
    if len(image) > MAX_IMAGE_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"Image size exceeds limit of {MAX_IMAGE_SIZE} bytes",
        )

    # Build options
    opts = request.options or RunOptionsModel()

    # Convert initial_memory keys from string to int (decimal or 0x-prefixed)
    initial_memory = {}
    for k, v in opts.initial_memory.items():
        try:
            initial_memory[int(k, 0)] = v
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid memory address key: {k}",
            )

    run_opts = RunOptions(
        memory_size=opts.memory_size,
        start_address=opts.start_address,
        max_steps=opts.max_steps,
        trace=opts.trace,
        trace_watch=opts.trace_watch,
        trace_include_registers=opts.trace_include_registers,
        max_trace_rows=opts.max_trace_rows,
        breakpoints=opts.breakpoints,
        initial_memory=initial_memory,
    )

    # Execute program
    result = run_program(image, options=run_opts)

    return result.to_dict()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
