import json
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import ChannelVersions, Checkpoint, CheckpointMetadata, CheckpointTuple
from langgraph.checkpoint.postgres.aio import AsyncPostgresSaver

from .crypto import CryptoUtils


def _aad(config: RunnableConfig, channel: str) -> bytes:
    thread_id = config["configurable"]["thread_id"]
    checkpoint_ns = config["configurable"].get("checkpoint_ns", "")
    return f"{thread_id}|{checkpoint_ns}|channel_values|{channel}".encode("utf-8")


def _encrypt_keys(config: RunnableConfig) -> set[str]:
    return set(config["configurable"].get("encrypt_keys", []))


def _seal(config: RunnableConfig, channel: str, value: Any) -> Dict[str, str]:
    raw = json.dumps(value).encode("utf-8")
    return {"__enc__": CryptoUtils.encrypt_bytes(raw, _aad(config, channel)), "__fmt__": "json"}


def _open(config: RunnableConfig, channel: str, value: Any) -> Any:
    if isinstance(value, dict) and "__enc__" in value:
        raw = CryptoUtils.decrypt_bytes(value["__enc__"], _aad(config, channel))
        return json.loads(raw)
    return value


def _seal_checkpoint(config: RunnableConfig, checkpoint: Checkpoint) -> Checkpoint:
    encrypt_keys = _encrypt_keys(config)
    cp = dict(checkpoint)
    cp["channel_values"] = {
        k: _seal(config, k, v) if CryptoUtils.should_encrypt(k, encrypt_keys) else v
        for k, v in cp.get("channel_values", {}).items()
    }
    return cp


def _seal_writes(config: RunnableConfig, writes: Sequence[Tuple[str, Any]]) -> List[Tuple[str, Any]]:
    encrypt_keys = _encrypt_keys(config)
    return [
        (channel, _seal(config, channel, value) if CryptoUtils.should_encrypt(channel, encrypt_keys) else value)
        for channel, value in writes
    ]


def _open_tuple(config: RunnableConfig, t: CheckpointTuple) -> CheckpointTuple:
    """Decrypt sealed channel values and pending writes of a loaded checkpoint."""
    cp = dict(t.checkpoint)
    cv = cp.get("channel_values", {})
    if isinstance(cv, dict):
        cp["channel_values"] = {k: _open(config, k, v) for k, v in cv.items()}

    pending = t.pending_writes
    if pending:
        pending = [(task_id, channel, _open(config, channel, value)) for task_id, channel, value in pending]

    return t._replace(checkpoint=cp, pending_writes=pending)


class EncryptedAsyncPostgresSaver(AsyncPostgresSaver):
    """
    Postgres checkpointer that stores the channels named in
    ``config["configurable"]["encrypt_keys"]`` as AES-GCM ciphertext, both in
    checkpoints and in pending writes. Registration forms keep Aadhaar and PAN
    in the ``values`` channel.
    """

    async def aput(
        self,
        config: RunnableConfig,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        new_versions: ChannelVersions,
    ) -> RunnableConfig:
        return await super().aput(config, _seal_checkpoint(config, checkpoint), metadata, new_versions)

    async def aput_writes(
        self,
        config: RunnableConfig,
        writes: Sequence[Tuple[str, Any]],
        task_id: str,
        task_path: str = "",
    ) -> None:
        await super().aput_writes(config, _seal_writes(config, writes), task_id, task_path)

    async def aget_tuple(self, config: RunnableConfig) -> Optional[CheckpointTuple]:
        t = await super().aget_tuple(config)
        if t is None:
            return None
        return _open_tuple(t.config, t)

    async def alist(self, config: Optional[RunnableConfig], **kwargs: Any) -> AsyncIterator[CheckpointTuple]:
        async for t in super().alist(config, **kwargs):
            yield _open_tuple(t.config, t)
