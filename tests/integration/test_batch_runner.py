"""End-to-end batch runs with a fake generation client."""

import json
from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console

from pose_studio.config import AppConfig, GeminiConfig, OutputConfig
from pose_studio.errors import GenerationServiceError
from pose_studio.output import ResultStore
from pose_studio.tasks.batch_runner import BatchRunner
from pose_studio.tasks.submission_plan import SubmissionPlan, SubmissionSpec


@pytest.fixture
def person_path(tmp_path, jpeg_bytes):
    path = tmp_path / "person.jpg"
    path.write_bytes(jpeg_bytes)
    return path


def _config(tmp_path, include_metadata=True):
    return AppConfig(
        gemini=GeminiConfig(api_key="test-key"),
        output=OutputConfig(root_dir=tmp_path / "out", include_metadata=include_metadata),
    )


def _console():
    return Console(file=StringIO(), force_terminal=False, width=120)


@pytest.mark.anyio
async def test_batch_saves_results_and_metadata(tmp_path, person_path, fake_client, png_bytes):
    plan = SubmissionPlan.from_specs(
        [
            SubmissionSpec(name="landing", source_image_path=str(person_path), pose="superhero landing pose"),
            SubmissionSpec(name="beach", source_image_path=str(person_path), background="a sunny beach"),
        ]
    )
    runner = BatchRunner(_config(tmp_path), plan, "demo", fake_client, console=_console())

    outcomes = await runner.run()

    assert [outcome.succeeded for outcome in outcomes] == [True, True]
    assert outcomes[0].output_path == tmp_path / "out" / "demo" / "landing.png"
    assert outcomes[0].output_path.read_bytes() == png_bytes
    metadata = json.loads((tmp_path / "out" / "demo" / "landing.json").read_text())
    assert metadata["request"]["pose"] == "superhero landing pose"
    assert metadata["normalizations"] == []
    assert len(fake_client.requests) == 2


@pytest.mark.anyio
async def test_batch_continues_after_failures(tmp_path, person_path, client_factory):
    client = client_factory(error=GenerationServiceError("quota exceeded"))
    plan = SubmissionPlan.from_specs(
        [
            SubmissionSpec(name="no-modifier", source_image_path=str(person_path)),
            SubmissionSpec(name="missing-file", source_image_path=str(tmp_path / "nope.jpg"), pose="sitting"),
            SubmissionSpec(name="quota", source_image_path=str(person_path), pose="sitting"),
        ]
    )
    runner = BatchRunner(_config(tmp_path, include_metadata=False), plan, "demo", client, console=_console())

    outcomes = await runner.run()

    assert not any(outcome.succeeded for outcome in outcomes)
    assert "pose, clothing, or background" in outcomes[0].message
    assert "not found" in outcomes[1].message
    assert "quota exceeded" in outcomes[2].message
    assert len(client.requests) == 1


def test_result_store_writes_extension_from_media_type(tmp_path, source_asset, jpeg_bytes):
    store = ResultStore(tmp_path, batch_name="single")
    path = store.save("edited", source_asset, {"pose": "sitting"})

    assert path == tmp_path / "single" / "edited.jpg"
    assert path.read_bytes() == jpeg_bytes
    assert json.loads(path.with_suffix(".json").read_text()) == {"pose": "sitting"}


@pytest.mark.anyio
async def test_batch_continues_after_file_system_errors(tmp_path, person_path, fake_client, monkeypatch):
    original_save = ResultStore.save
    original_read = Path.read_bytes

    def save(self, name, asset, metadata=None):
        if name == "unwritable":
            raise PermissionError(f"Permission denied: {name}")
        return original_save(self, name, asset, metadata)

    def read_bytes(self):
        if self.name == "locked.jpg":
            raise PermissionError(f"Permission denied: {self}")
        return original_read(self)

    locked = tmp_path / "locked.jpg"
    locked.write_bytes(person_path.read_bytes())
    monkeypatch.setattr(ResultStore, "save", save)
    monkeypatch.setattr(Path, "read_bytes", read_bytes)
    plan = SubmissionPlan.from_specs(
        [
            SubmissionSpec(name="unwritable", source_image_path=str(person_path), pose="sitting"),
            SubmissionSpec(name="locked", source_image_path=str(locked), pose="sitting"),
            SubmissionSpec(name="two", source_image_path=str(person_path), pose="standing"),
        ]
    )
    console = _console()
    runner = BatchRunner(_config(tmp_path, include_metadata=False), plan, "demo", fake_client, console=console)

    outcomes = await runner.run()

    assert [outcome.succeeded for outcome in outcomes] == [False, False, True]
    assert "Failed to save result" in outcomes[0].message
    assert "Permission denied" in outcomes[1].message
    assert outcomes[2].output_path == tmp_path / "out" / "demo" / "two.png"
    assert "Batch summary" in console.file.getvalue()


def test_result_store_creates_nested_directories(tmp_path, source_asset):
    store = ResultStore(tmp_path, batch_name="single")
    path = store.save("nested/edited", source_asset)

    assert path == tmp_path / "single" / "nested" / "edited.jpg"
    assert path.is_file()
