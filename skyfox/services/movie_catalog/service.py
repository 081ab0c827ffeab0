"""Read-only movie catalog loaded once from a JSON file."""

import json
from pathlib import Path
from typing import Any

from skyfox.common.logging import logger


BUNDLED_DATA_PATH = Path(__file__).parent / "data" / "movies.json"


class MovieCatalog:
    """In-memory list of movie records keyed by `imdbID`."""

    def __init__(self, movies: list[dict[str, Any]]) -> None:
        self._movies = movies
        self._by_id = {movie["imdbID"]: movie for movie in movies if "imdbID" in movie}

    @classmethod
    def from_file(cls, data_path: str | Path | None = None) -> "MovieCatalog":
        path = Path(data_path) if data_path else BUNDLED_DATA_PATH
        try:
            movies = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ValueError(f"failed to read movies data from {path}") from exc
        except json.JSONDecodeError as exc:
            raise ValueError(f"failed to parse movies JSON from {path}") from exc
        if not isinstance(movies, list):
            raise ValueError("movies data must be a JSON array")
        logger.info("movie catalog loaded path=%s count=%s", path, len(movies))
        return cls(movies)

    def all(self) -> list[dict[str, Any]]:
        return self._movies

    def get(self, imdb_id: str) -> dict[str, Any] | None:
        return self._by_id.get(imdb_id)
