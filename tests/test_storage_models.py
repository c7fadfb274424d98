"""Tests for core.engine.models (storage targets and engine payload shapes)."""

import pytest
from pydantic import ValidationError

from core.engine.models import (
    AzureBlobTarget,
    BlockFormat,
    FilesystemTarget,
    RepositoryStatus,
    RcloneTarget,
    SFTPTarget,
    SupportedAlgorithms,
    build_target,
    is_submittable,
    missing_fields,
    target_class,
)


def test_build_target_dispatches_on_type() -> None:
    target = build_target("sftp", {"host": "nas", "username": "me", "path": "/repo"})
    assert isinstance(target, SFTPTarget)
    assert target.port == 22


def test_build_target_drops_blank_optionals() -> None:
    target = build_target("s3", {
        "bucket": "backups",
        "access_key_id": "AKIA",
        "secret_access_key": "s3cr3t",
        "endpoint": "",
        "region": None,
    })
    assert target.storage_config() == {
        "type": "s3",
        "config": {"bucket": "backups", "accessKeyID": "AKIA", "secretAccessKey": "s3cr3t"},
    }


def test_storage_config_uses_engine_names() -> None:
    target = AzureBlobTarget(
        container="c", storage_account="acct", storage_key="k", prefix="laptop/"
    )
    assert target.storage_config() == {
        "type": "azureBlob",
        "config": {
            "container": "c",
            "storageAccount": "acct",
            "storageKey": "k",
            "prefix": "laptop/",
        },
    }
    rclone = RcloneTarget(remote_path="remote:backups")
    assert rclone.storage_config()["config"] == {"remotePath": "remote:backups"}


def test_whitespace_is_stripped() -> None:
    assert FilesystemTarget(path="  /repo  ").path == "/repo"
    with pytest.raises(ValidationError):
        FilesystemTarget(path="   ")


def test_targets_are_immutable() -> None:
    target = FilesystemTarget(path="/repo")
    with pytest.raises(ValidationError):
        target.path = "/elsewhere"  # type: ignore[misc]


@pytest.mark.parametrize("port", ["0", "65536", "ssh"])
def test_sftp_port_validated(port: str) -> None:
    with pytest.raises(ValidationError):
        build_target("sftp", {"host": "nas", "username": "me", "path": "/repo", "port": port})


def test_describe_never_includes_secrets() -> None:
    target = build_target(
        "webdav", {"url": "https://dav.example/repo", "username": "me", "password": "pw"}
    )
    assert "pw" not in target.describe()
    s3 = build_target("s3", {"bucket": "b", "access_key_id": "AKIA", "secret_access_key": "s3cr3t"})
    assert "s3cr3t" not in s3.describe()


def test_missing_fields_lists_required_only() -> None:
    assert missing_fields("b2", {"bucket": "b", "key": "  "}) == ["key_id", "key"]
    assert missing_fields("filesystem", {"path": "/repo"}) == []


def test_is_submittable() -> None:
    assert is_submittable("filesystem", {"path": "/repo"})
    assert not is_submittable(None, {"path": "/repo"})
    assert not is_submittable("floppy", {"path": "/repo"})
    assert not is_submittable("gcs", {"bucket": "b"})


def test_target_class_unknown_type() -> None:
    with pytest.raises(KeyError):
        target_class("floppy")
    assert target_class("sftp") is SFTPTarget


def test_every_provider_has_label() -> None:
    for name in ("filesystem", "s3", "gcs", "azureBlob", "b2", "sftp", "webdav", "rclone"):
        assert target_class(name).label


def test_default_block_format() -> None:
    assert BlockFormat() == SupportedAlgorithms().default_block_format()
    assert BlockFormat().model_dump() == {
        "hash": "BLAKE3-256",
        "encryption": "AES256-GCM-HMAC-SHA256",
        "splitter": "DYNAMIC-4M-BUZHASH",
    }


def test_repository_status_defaults_to_disconnected() -> None:
    assert RepositoryStatus.model_validate({}).connected is False
