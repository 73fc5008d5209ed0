import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from otherworld import storage
from otherworld.game import GameSession
from otherworld.llm import LLM, HttpLLM
from otherworld.routes import router

load_dotenv(Path(__file__).parent.parent / ".env")

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"


def create_app(
    data_dir: Path | None = None,
    llm: LLM | None = None,
    autorun: bool = True,
) -> FastAPI:
    resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    storage.init_storage(resolved)
    config = storage.get_config()

    app = FastAPI(title="Otherworldly Cultivation Simulator")
    app.state.session = GameSession(
        progress=storage.default_progress_store(),
        llm=llm or HttpLLM.from_connection(config["llm_connection"]),
        pacing_ms=config["pacing_ms"],
        autorun=autorun,
    )
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
