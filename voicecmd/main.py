import logging
import os
import socket
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voicecmd.api.voice import close_session_store, router as voice_router

logging.basicConfig(
  level=os.getenv("LOG_LEVEL", "INFO").upper(),
  format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
  yield
  await close_session_store()


app = FastAPI(title="Voice Command Service", lifespan=lifespan)
app.include_router(voice_router)

app.add_middleware(
  CORSMiddleware,
  allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()],
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
)


@app.get("/health")
async def health():
  return {"status": "ok", "semantic": bool(os.getenv("OPENAI_API_KEY")), "data_api": bool(os.getenv("DATA_API_BASE_URL"))}


if __name__ == "__main__":
  def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
      return default
    try:
      return int(raw)
    except ValueError:
      return default


  def _is_bindable(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
      sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
      try:
        sock.bind((host, port))
        return True
      except OSError:
        return False


  host = os.getenv("BACKEND_HOST", "127.0.0.1")
  port = _int_env("BACKEND_PORT", 8888)
  if not _is_bindable(host, port):
    raise SystemExit(f"Port {port} on {host} is busy; set BACKEND_PORT to another port")
  reload_enabled = os.getenv("BACKEND_RELOAD", "false").lower() in ("1", "true", "yes", "on")

  logger.info("Starting voice command service on %s:%s (reload=%s)", host, port, reload_enabled)
  uvicorn.run("voicecmd.main:app", host=host, port=port, reload=reload_enabled)
