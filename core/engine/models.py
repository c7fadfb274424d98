"""Repository engine data model: storage targets, block format, repository status.

Storage targets are a pydantic union discriminated on ``type``. Field names are
snake_case in Python and serialise to the camelCase keys the Kopia API expects.
"""

from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

__all__ = [
    "AzureBlobTarget",
    "B2Target",
    "BlockFormat",
    "FilesystemTarget",
    "GCSTarget",
    "RcloneTarget",
    "RepositoryStatus",
    "S3Target",
    "SFTPTarget",
    "StorageTarget",
    "SupportedAlgorithms",
    "WebDAVTarget",
    "build_target",
    "is_submittable",
    "missing_fields",
    "target_class",
]

_Required = Annotated[str, Field(min_length=1)]


class _TargetBase(BaseModel):
    """Shared behaviour for storage target variants."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        frozen=True,
    )

    # Human-readable label used by the wizard
    label: ClassVar[str] = ""

    def storage_config(self) -> dict[str, Any]:
        """Engine storage config: {"type": ..., "config": {...}} with unset optionals omitted."""
        config = self.model_dump(by_alias=True, exclude_none=True, exclude={"type"})
        config = {k: v for k, v in config.items() if v != ""}
        return {"type": self.type, "config": config}  # type: ignore[attr-defined]

    def describe(self) -> str:
        """Short location string for logs and prompts. Never includes secrets."""
        return self.type  # type: ignore[attr-defined]


class FilesystemTarget(_TargetBase):
    label: ClassVar[str] = "Local or network-attached filesystem"

    type: Literal["filesystem"] = "filesystem"
    path: _Required

    def describe(self) -> str:
        return f"filesystem:{self.path}"


class S3Target(_TargetBase):
    label: ClassVar[str] = "Amazon S3 or compatible (MinIO, Wasabi, ...)"

    type: Literal["s3"] = "s3"
    bucket: _Required
    access_key_id: _Required = Field(alias="accessKeyID")
    secret_access_key: _Required = Field(alias="secretAccessKey")
    endpoint: str | None = None
    region: str | None = None
    session_token: str | None = Field(default=None, alias="sessionToken")
    prefix: str | None = None

    def describe(self) -> str:
        host = self.endpoint or "s3.amazonaws.com"
        return f"s3://{self.bucket}/{self.prefix or ''} ({host})"


class GCSTarget(_TargetBase):
    label: ClassVar[str] = "Google Cloud Storage"

    type: Literal["gcs"] = "gcs"
    bucket: _Required
    credentials_file: _Required = Field(alias="credentialsFile")
    prefix: str | None = None

    def describe(self) -> str:
        return f"gs://{self.bucket}/{self.prefix or ''}"


class AzureBlobTarget(_TargetBase):
    label: ClassVar[str] = "Azure Blob Storage"

    type: Literal["azureBlob"] = "azureBlob"
    container: _Required
    storage_account: _Required = Field(alias="storageAccount")
    storage_key: _Required = Field(alias="storageKey")
    storage_domain: str | None = Field(default=None, alias="storageDomain")
    prefix: str | None = None

    def describe(self) -> str:
        return f"azure://{self.storage_account}/{self.container}/{self.prefix or ''}"


class B2Target(_TargetBase):
    label: ClassVar[str] = "Backblaze B2"

    type: Literal["b2"] = "b2"
    bucket: _Required
    key_id: _Required = Field(alias="keyID")
    key: _Required
    prefix: str | None = None

    def describe(self) -> str:
        return f"b2://{self.bucket}/{self.prefix or ''}"


class SFTPTarget(_TargetBase):
    label: ClassVar[str] = "SFTP server"

    type: Literal["sftp"] = "sftp"
    host: _Required
    username: _Required
    path: _Required
    port: int = Field(default=22, ge=1, le=65535)
    password: str | None = None
    keyfile: str | None = None
    known_hosts_file: str | None = Field(default=None, alias="knownHostsFile")

    def describe(self) -> str:
        return f"sftp://{self.username}@{self.host}:{self.port}{self.path}"


class WebDAVTarget(_TargetBase):
    label: ClassVar[str] = "WebDAV server"

    type: Literal["webdav"] = "webdav"
    url: _Required
    username: _Required
    password: _Required

    def describe(self) -> str:
        return self.url


class RcloneTarget(_TargetBase):
    label: ClassVar[str] = "Rclone remote"

    type: Literal["rclone"] = "rclone"
    remote_path: _Required = Field(alias="remotePath")
    rclone_exe: str | None = Field(default=None, alias="rcloneExe")

    def describe(self) -> str:
        return f"rclone:{self.remote_path}"


StorageTarget = Annotated[
    Union[
        FilesystemTarget,
        S3Target,
        GCSTarget,
        AzureBlobTarget,
        B2Target,
        SFTPTarget,
        WebDAVTarget,
        RcloneTarget,
    ],
    Field(discriminator="type"),
]

_TARGET_ADAPTER: TypeAdapter[Any] = TypeAdapter(StorageTarget)

_TARGET_CLASSES: dict[str, type[_TargetBase]] = {
    cls.model_fields["type"].default: cls
    for cls in (
        FilesystemTarget,
        S3Target,
        GCSTarget,
        AzureBlobTarget,
        B2Target,
        SFTPTarget,
        WebDAVTarget,
        RcloneTarget,
    )
}


def target_class(storage_type: str) -> type[_TargetBase]:
    """Model class for a storage type. Raises KeyError for unknown types."""
    return _TARGET_CLASSES[storage_type]


def build_target(storage_type: str, fields: dict[str, Any]) -> Any:
    """Validate collected fields into a StorageTarget. Raises ValidationError."""
    data = {k: v for k, v in fields.items() if v is not None and v != ""}
    data["type"] = storage_type
    return _TARGET_ADAPTER.validate_python(data)


def missing_fields(storage_type: str, fields: dict[str, Any]) -> list[str]:
    """Required fields of the storage type that are absent or blank."""
    cls = target_class(storage_type)
    out: list[str] = []
    for name, info in cls.model_fields.items():
        if name == "type" or not info.is_required():
            continue
        value = fields.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            out.append(name)
    return out


def is_submittable(storage_type: str | None, fields: dict[str, Any]) -> bool:
    """True when a storage type is chosen and the fields validate into a target."""
    if storage_type is None or storage_type not in _TARGET_CLASSES:
        return False
    if missing_fields(storage_type, fields):
        return False
    try:
        build_target(storage_type, fields)
    except ValidationError:
        return False
    return True


class BlockFormat(BaseModel):
    """Block format algorithms chosen when a repository is created."""

    model_config = ConfigDict(frozen=True)

    HASH_CHOICES: ClassVar[tuple[str, ...]] = ("BLAKE3-256", "BLAKE2B-256", "BLAKE2S-256")
    ENCRYPTION_CHOICES: ClassVar[tuple[str, ...]] = (
        "AES256-GCM-HMAC-SHA256",
        "CHACHA20-POLY1305-HMAC-SHA256",
    )
    SPLITTER_CHOICES: ClassVar[tuple[str, ...]] = (
        "DYNAMIC-4M-BUZHASH",
        "FIXED-4M",
        "FIXED-1M",
    )

    hash: str = "BLAKE3-256"
    encryption: str = "AES256-GCM-HMAC-SHA256"
    splitter: str = "DYNAMIC-4M-BUZHASH"


class SupportedAlgorithms(BaseModel):
    """Algorithms offered by the engine (GET /api/v1/repo/algorithms)."""

    model_config = ConfigDict(populate_by_name=True)

    default_hash: str = Field(default="BLAKE3-256", alias="defaultHash")
    default_encryption: str = Field(default="AES256-GCM-HMAC-SHA256", alias="defaultEncryption")
    default_splitter: str = Field(default="DYNAMIC-4M-BUZHASH", alias="defaultSplitter")
    hash: list[str] = Field(default_factory=lambda: list(BlockFormat.HASH_CHOICES))
    encryption: list[str] = Field(default_factory=lambda: list(BlockFormat.ENCRYPTION_CHOICES))
    splitter: list[str] = Field(default_factory=lambda: list(BlockFormat.SPLITTER_CHOICES))

    def default_block_format(self) -> BlockFormat:
        return BlockFormat(
            hash=self.default_hash,
            encryption=self.default_encryption,
            splitter=self.default_splitter,
        )


class RepositoryStatus(BaseModel):
    """Point-in-time repository status as reported by the engine.

    Advisory only: ``connected=False`` right after a create/connect call means
    the engine has not finished yet, not that the call failed.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    connected: bool = False
    config_file: str | None = Field(default=None, alias="configFile")
    storage: str | None = None
    hash: str | None = None
    encryption: str | None = None
    splitter: str | None = None
    format_version: int | None = Field(default=None, alias="formatVersion")
    description: str | None = None
    username: str | None = None
    hostname: str | None = None
    readonly: bool | None = None
