import textwrap

import pytest

from vocant.adapters.manifest_file_adapter import ManifestFileAdapter
from vocant.core.exceptions import ManifestError
from vocant.core.models.work_item import Operation


def write_manifest(tmp_path, text):
    path = tmp_path / "batch.yaml"
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


def test_loads_items_with_defaults_and_relative_paths(tmp_path):
    (tmp_path / "audio").mkdir()
    (tmp_path / "audio" / "standup.mp3").write_bytes(b"ID3standup")
    (tmp_path / "audio" / "retro.wav").write_bytes(b"RIFFretro")
    manifest = write_manifest(tmp_path, """
        defaults:
          use_original_filename: true
          callback_url: https://me.test/hook
        items:
          - file: audio/standup.mp3
          - file: audio/retro.wav
            content_type: audio/x-wav
            use_original_filename: false
          - operation: status
            job_id: job-9
    """)

    items = ManifestFileAdapter(str(manifest)).load()

    assert [i.index for i in items] == [0, 1, 2]
    first, second, third = items
    assert first.operation == Operation.transcribe
    assert first.payload == b"ID3standup"
    assert first.file_name == "standup.mp3"
    assert first.content_type == "audio/mpeg"
    assert first.use_original_filename is True
    assert first.callback_url == "https://me.test/hook"
    assert second.content_type == "audio/x-wav"
    assert second.use_original_filename is False
    assert third.operation == Operation.status
    assert third.job_id == "job-9"
    assert third.payload is None


def test_missing_payload_file_does_not_reject_manifest(tmp_path):
    manifest = write_manifest(tmp_path, """
        items:
          - file: nowhere.mp3
    """)

    (item,) = ManifestFileAdapter(str(manifest)).load()

    assert item.payload is None
    assert item.file_name == "nowhere.mp3"


@pytest.mark.parametrize(
    "text",
    [
        "items: not-a-list\n",
        "just a string\n",
        "items:\n  - 42\n",
        "items:\n  - operation: dance\n",
        "items:\n  - file: a.mp3\n    colour: blue\n",
        "items: [unclosed\n",
    ],
)
def test_invalid_manifest_raises(tmp_path, text):
    manifest = tmp_path / "bad.yaml"
    manifest.write_text(text, encoding="utf-8")

    with pytest.raises(ManifestError):
        ManifestFileAdapter(str(manifest)).load()


def test_unreadable_manifest_raises(tmp_path):
    with pytest.raises(ManifestError):
        ManifestFileAdapter(str(tmp_path / "missing.yaml")).load()


def test_item_without_job_id_does_not_reject_manifest(tmp_path):
    manifest = write_manifest(tmp_path, """
        items:
          - operation: fetch
          - operation: status
            job_id: job-2
    """)

    first, second = ManifestFileAdapter(str(manifest)).load()

    assert first.operation == Operation.fetch
    assert first.job_id is None
    assert second.job_id == "job-2"
