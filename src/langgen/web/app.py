from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
import uvicorn

from ..config import Config, default_config, load_config
from ..derivation import Derivation
from ..errors import GrammarError
from ..main import generate


class GrammarManager:
    def __init__(self, config_path: Optional[Path]) -> None:
        self._config_path = config_path
        self._config: Optional[Config] = None

    def get_config(self, reload: bool = False) -> Config:
        if reload or self._config is None:
            if self._config_path is None:
                self._config = default_config()
            else:
                self._config = load_config(self._config_path)
        return self._config


def _parse_indices(raw: str) -> List[int]:
    try:
        return [int(part) for part in raw.replace(",", " ").split()]
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid rule index list: {raw}") from exc


def create_app(config_path: Optional[Path] = None) -> FastAPI:
    manager = GrammarManager(config_path)

    app = FastAPI(title="Language Generator", version="0.1.0")

    @app.exception_handler(FileNotFoundError)
    @app.exception_handler(ValueError)
    async def bad_config(_request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=400)

    @app.get("/api/grammar")
    async def get_grammar(reload: Optional[int] = None) -> JSONResponse:
        config = manager.get_config(reload=bool(reload))
        return JSONResponse(config.grammar().describe())

    @app.get("/api/derive")
    async def derive_sequence(indices: str = "") -> JSONResponse:
        grammar = manager.get_config().grammar()
        try:
            derivation = Derivation(grammar).apply_sequence(_parse_indices(indices))
        except GrammarError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return JSONResponse(derivation.to_dict())

    @app.get("/api/derive/random")
    async def derive_random(
        step_limit: Optional[int] = None,
        attempts: Optional[int] = None,
        seed: Optional[int] = None,
        uniform: bool = False,
    ) -> JSONResponse:
        if step_limit is not None and step_limit < 0:
            raise HTTPException(status_code=400, detail="step_limit must not be negative.")
        config = manager.get_config()
        try:
            derivation, used_seed, used_attempts = generate(
                config, step_limit=step_limit, attempts=attempts, seed=seed, uniform=uniform
            )
        except GrammarError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        payload = derivation.to_dict()
        payload.update({"seed": used_seed, "attempts": used_attempts})
        return JSONResponse(payload)

    return app


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Serve grammar classification and derivations over HTTP.")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a grammar TOML file (defaults to the built-in expression grammar).",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Host interface to bind.")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")
    args = parser.parse_args(argv)

    config_path = args.config.resolve() if args.config is not None else None
    if config_path is not None:
        # Fail fast on a broken config before binding the port.
        load_config(config_path)
    app = create_app(config_path)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
