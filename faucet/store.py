import os, json, tempfile
from typing import Optional, Protocol

from .models import RegistryState


class StateStore(Protocol):
    def load(self) -> Optional[RegistryState]: ...

    def save(self, state: RegistryState) -> None: ...


class MemoryStateStore:
    def __init__(self):
        self._state: Optional[RegistryState] = None

    def load(self) -> Optional[RegistryState]:
        return self._state.model_copy(deep=True) if self._state is not None else None

    def save(self, state: RegistryState) -> None:
        self._state = state.model_copy(deep=True)


class JsonFileStateStore:
    """Registry state as one JSON document, replaced atomically on every save."""

    def __init__(self, path: str):
        self.path = path
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)

    def load(self) -> Optional[RegistryState]:
        if not os.path.exists(self.path):
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            return RegistryState.model_validate_json(f.read())

    def save(self, state: RegistryState) -> None:
        data = state.model_dump(mode="json")
        data["granted"] = sorted(data["granted"])
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp = tempfile.mkstemp(dir=directory, prefix=".state-", suffix=".json")
        try:
            f = os.fdopen(fd, "w", encoding="utf-8")
        except BaseException:
            os.close(fd)
            os.unlink(tmp)
            raise
        try:
            with f:
                json.dump(data, f, sort_keys=True)
            os.replace(tmp, self.path)
        except BaseException:
            os.unlink(tmp)
            raise
