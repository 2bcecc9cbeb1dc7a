# backend/tests/unit/test_flow_storage.py
import json
import re

import pytest

from llmrouter.services.flow_storage import FlowStorage, JsonFileStorage, MemoryStorage, generate_flow_id


@pytest.fixture(params=["memory", "file"])
def storage(request, tmp_path):
    if request.param == "memory":
        return FlowStorage(MemoryStorage())
    return FlowStorage(JsonFileStorage(str(tmp_path / "flows.json")))


def test_generate_flow_id_format():
    assert re.fullmatch(r"flow_\d+_[a-z0-9]{9}", generate_flow_id())
    assert generate_flow_id() != generate_flow_id()


def test_save_and_get_flow(storage):
    saved = storage.save_flow("Blog Writer", "First outline then write", "Topic: tea")

    assert saved.created_at == saved.updated_at
    assert storage.get_flow(saved.id) == saved
    assert storage.get_all_flows() == [saved]
    assert storage.get_flow("flow_missing") is None


def test_update_flow_keeps_identity(storage):
    saved = storage.save_flow("Draft", "Summarize the text")

    updated = storage.update_flow(saved.id, {"name": "Final", "id": "hijack", "created_at": 0})

    assert updated.name == "Final"
    assert updated.id == saved.id
    assert updated.created_at == saved.created_at
    assert updated.updated_at >= saved.updated_at
    assert storage.get_flow(saved.id).name == "Final"
    assert storage.update_flow("flow_missing", {"name": "x"}) is None


def test_delete_flow(storage):
    keep = storage.save_flow("Keep", "Write a poem")
    drop = storage.save_flow("Drop", "Write a song")

    assert storage.delete_flow(drop.id) is True
    assert storage.delete_flow(drop.id) is False
    assert [f.id for f in storage.get_all_flows()] == [keep.id]


def test_export_and_import_creates_new_copy(storage):
    original = storage.save_flow("Translator", "First translate this then proofread it", "Hello")

    exported = storage.export_flow(original.id)
    imported = storage.import_flow(exported)

    assert json.loads(exported)["name"] == "Translator"
    assert imported.id != original.id
    assert (imported.name, imported.description, imported.initial_input) == ("Translator", original.description, "Hello")
    assert len(storage.get_all_flows()) == 2
    assert storage.export_flow("flow_missing") is None



def test_import_accepts_camel_case_initial_input(storage):
    raw = json.dumps({"name": "Summarizer", "description": "Summarize this", "initialInput": "Long text"})

    imported = storage.import_flow(raw)

    assert imported.initial_input == "Long text"


@pytest.mark.parametrize("raw", ["not json", "[]", json.dumps({"name": "No description"})])
def test_import_rejects_invalid_data(storage, raw):
    assert storage.import_flow(raw) is None
    assert storage.get_all_flows() == []


def test_malformed_entries_are_skipped():
    backend = MemoryStorage()
    backend.set("flows", [{"id": "broken"}, {
        "id": "flow_1_abc", "name": "Ok", "description": "Write", "created_at": 1, "updated_at": 1,
    }])

    assert [f.id for f in FlowStorage(backend).get_all_flows()] == ["flow_1_abc"]


def test_json_file_storage_is_prefixed_and_persistent(tmp_path):
    path = tmp_path / "nested" / "store.json"
    first = JsonFileStorage(str(path), prefix="a_")
    first.set("flows", [1, 2])
    JsonFileStorage(str(path), prefix="b_").set("flows", [3])

    reopened = JsonFileStorage(str(path), prefix="a_")
    assert reopened.get("flows") == [1, 2]
    assert reopened.keys() == ["flows"]
    assert set(json.loads(path.read_text())) == {"a_flows", "b_flows"}

    reopened.clear()
    assert reopened.has("flows") is False
    assert JsonFileStorage(str(path), prefix="b_").get("flows") == [3]


def test_json_file_storage_tolerates_corrupt_file(tmp_path):
    path = tmp_path / "flows.json"
    path.write_text("{corrupt", encoding="utf-8")

    assert FlowStorage(JsonFileStorage(str(path))).get_all_flows() == []


def test_memory_storage_remove():
    backend = MemoryStorage(prefix="p_")
    backend.set("x", {"a": 1})
    backend.remove("x")
    backend.remove("x")

    assert backend.get("x") is None
    assert backend.keys() == []
