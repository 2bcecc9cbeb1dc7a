# /llmrouter/services/flow_storage.py

import json
import logging
import random
import string
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError

from llmrouter.config.settings import settings
from llmrouter.models.flow import SavedFlow

# Persistence port for saved flows. The executor never touches this; routes
# depend on FlowStorage, which sits on any KeyValueStorage implementation.

logger = logging.getLogger(__name__)

FLOWS_KEY = "flows"


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Any: ...
    def set(self, key: str, value: Any) -> bool: ...
    def remove(self, key: str) -> None: ...
    def clear(self) -> None: ...
    def has(self, key: str) -> bool: ...
    def keys(self) -> List[str]: ...


class MemoryStorage:
    """Prefixed in-process key-value store."""

    def __init__(self, prefix: str = "chatbot_flows_"):
        self.prefix = prefix
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Any:
        raw = self._data.get(self.prefix + key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> bool:
        self._data[self.prefix + key] = json.dumps(value)
        return True

    def remove(self, key: str) -> None:
        self._data.pop(self.prefix + key, None)

    def clear(self) -> None:
        for key in [k for k in self._data if k.startswith(self.prefix)]:
            del self._data[key]

    def has(self, key: str) -> bool:
        return self.prefix + key in self._data

    def keys(self) -> List[str]:
        return [k[len(self.prefix):] for k in self._data if k.startswith(self.prefix)]


class JsonFileStorage:
    """
    Prefixed key-value store kept in a single JSON document on disk.

    Read and write failures are logged and reported through the return value
    (None / False) so a corrupt file never takes the API down.
    """

    def __init__(self, path: str, prefix: str = "chatbot_flows_"):
        self.path = Path(path)
        self.prefix = prefix
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            logger.error(f"Error reading flow storage file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _dump(self, data: Dict[str, Any]) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp_path.replace(self.path)
            return True
        except OSError as e:
            logger.error(f"Error writing flow storage file {self.path}: {e}")
            return False

    def get(self, key: str) -> Any:
        with self._lock:
            return self._load().get(self.prefix + key)

    def set(self, key: str, value: Any) -> bool:
        with self._lock:
            data = self._load()
            data[self.prefix + key] = value
            return self._dump(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if data.pop(self.prefix + key, None) is not None:
                self._dump(data)

    def clear(self) -> None:
        with self._lock:
            data = {k: v for k, v in self._load().items() if not k.startswith(self.prefix)}
            self._dump(data)

    def has(self, key: str) -> bool:
        with self._lock:
            return self.prefix + key in self._load()

    def keys(self) -> List[str]:
        with self._lock:
            return [k[len(self.prefix):] for k in self._load() if k.startswith(self.prefix)]


def _now_ms() -> int:
    return int(time.time() * 1000)


def generate_flow_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"flow_{_now_ms()}_{suffix}"


class FlowStorage:
    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    def get_all_flows(self) -> List[SavedFlow]:
        raw = self.storage.get(FLOWS_KEY) or []
        flows = []
        for item in raw:
            try:
                flows.append(SavedFlow.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed saved flow: {e}")
        return flows

    def _write(self, flows: List[SavedFlow]) -> bool:
        return self.storage.set(FLOWS_KEY, [f.model_dump() for f in flows])

    def get_flow(self, flow_id: str) -> Optional[SavedFlow]:
        return next((f for f in self.get_all_flows() if f.id == flow_id), None)

    def save_flow(self, name: str, description: str, initial_input: Optional[str] = None) -> SavedFlow:
        flows = self.get_all_flows()
        now = _now_ms()
        new_flow = SavedFlow(
            id=generate_flow_id(),
            name=name,
            description=description,
            initial_input=initial_input,
            created_at=now,
            updated_at=now,
        )
        flows.append(new_flow)
        self._write(flows)
        return new_flow

    def update_flow(self, flow_id: str, updates: Dict[str, Any]) -> Optional[SavedFlow]:
        """Apply `updates` (name, description, initial_input). id and created_at are immutable."""
        flows = self.get_all_flows()
        for index, flow in enumerate(flows):
            if flow.id == flow_id:
                allowed = {k: v for k, v in updates.items() if k in {"name", "description", "initial_input"}}
                flows[index] = flow.model_copy(update={**allowed, "updated_at": _now_ms()})
                self._write(flows)
                return flows[index]
        return None

    def delete_flow(self, flow_id: str) -> bool:
        flows = self.get_all_flows()
        remaining = [f for f in flows if f.id != flow_id]
        if len(remaining) == len(flows):
            return False
        self._write(remaining)
        return True

    def export_flow(self, flow_id: str) -> Optional[str]:
        flow = self.get_flow(flow_id)
        if flow is None:
            return None
        return json.dumps(flow.model_dump(), indent=2)

    def import_flow(self, raw_json: str) -> Optional[SavedFlow]:
        """Save a copy of an exported flow under a new id. Invalid input returns None."""
        try:
            data = json.loads(raw_json)
        except ValueError as e:
            logger.error(f"Error importing flow: {e}")
            return None

        if not isinstance(data, dict) or not data.get("name") or not data.get("description"):
            logger.error("Error importing flow: Invalid flow data")
            return None

        return self.save_flow(
            name=str(data["name"]),
            description=str(data["description"]),
            initial_input=data.get("initial_input", data.get("initialInput")),
        )


flow_storage = FlowStorage(JsonFileStorage(settings.flows_storage_path, settings.flows_storage_prefix))


def get_flow_storage() -> FlowStorage:
    """FastAPI dependency; tests override it with a MemoryStorage-backed instance."""
    return flow_storage
