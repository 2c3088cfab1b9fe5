from fastapi import Depends, FastAPI, HTTPException
import uvicorn
import argparse
import os
import sys
from typing import Any, Dict, Optional

from models import SessionHistory, ToolCallRequest, ToolResponse
from review_pipeline import ReviewPipeline
from session_log import SessionLog
from tools.config import ReviewSettings, get_review_config, get_review_config_path, update_review_config

app = FastAPI(title="Gemini Code Review Backend")

_pipeline: Optional[ReviewPipeline] = None


def _build_pipeline(session: Optional[SessionLog] = None) -> ReviewPipeline:
    settings = ReviewSettings.from_config(get_review_config())
    return ReviewPipeline(settings, session or SessionLog(settings.root_dir))


def get_pipeline() -> ReviewPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = _build_pipeline()
    return _pipeline

# ==================== Base routes ====================

@app.get("/")
def read_root():
    return {"status": "Gemini code review backend is running!", "version": "2.1"}

@app.get("/__debug/info")
def debug_info(pipeline: ReviewPipeline = Depends(get_pipeline)):
    return {
        "cwd": os.getcwd(),
        "root_dir": pipeline.settings.root_dir,
        "executable": pipeline.settings.executable,
        "cli_validated": pipeline.availability.validated,
        "config_path": get_review_config_path(),
        "routes": [route.path for route in app.routes],
    }

# ==================== Tools ====================

@app.get("/tools")
def get_tools(pipeline: ReviewPipeline = Depends(get_pipeline)):
    return pipeline.list_tools()

@app.post("/tools/{tool_name}/call", response_model=ToolResponse)
async def call_tool(tool_name: str, request: ToolCallRequest, pipeline: ReviewPipeline = Depends(get_pipeline)):
    return await pipeline.handle(tool_name, request.arguments)

@app.get("/tools/config")
def get_tools_config():
    return get_review_config()

@app.put("/tools/config")
def set_tools_config(payload: Dict[str, Any]):
    global _pipeline
    try:
        updated = update_review_config(payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    session = _pipeline.session if _pipeline is not None else None
    _pipeline = _build_pipeline(session)
    return updated

# ==================== Session ====================

@app.get("/session/history", response_model=SessionHistory)
def get_session_history(pipeline: ReviewPipeline = Depends(get_pipeline)):
    return pipeline.session.snapshot()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Gemini Code Review Backend")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--root", default=None, help="Directory reviewed files must live under")
    args = parser.parse_args()
    if args.root:
        os.environ["REVIEW_PROJECT_ROOT"] = os.path.abspath(args.root)
    pipeline = get_pipeline()
    print("Starting FastAPI server...", file=sys.stderr)
    print(f"Review root: {pipeline.settings.root_dir}", file=sys.stderr)
    print(f"Analysis CLI: {pipeline.settings.executable}", file=sys.stderr)
    uvicorn.run(app, host=args.host, port=args.port)
