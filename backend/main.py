from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from api.chat_stream import current_session, handle_chat_message, reset_session
from session.config import cors_origins, tomtom_api_key
from session.style import build_tile_style


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    reset_session()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ApiChatRequest(BaseModel):
    message: str = Field(min_length=1)


@app.post("/chat")
def chat(body: ApiChatRequest):
    return StreamingResponse(
        handle_chat_message(body.message), media_type="text/event-stream"
    )


@app.get("/style")
def style():
    return build_tile_style(tomtom_api_key())


@app.get("/session")
def session_status():
    session = current_session()
    if session is None:
        return {"state": "uninitialized", "error": None, "pending": False, "warnings": []}
    return session.status()
