from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from .codec import to_wire_form
from .types import ImageAsset

_EXTENSIONS = {"image/png": ".png", "image/jpeg": ".jpg", "image/webp": ".webp"}


class ResultStore:
    """Write generated images (and optional metadata sidecars) under one directory."""

    def __init__(self, root_dir: Path, batch_name: str | None = None) -> None:
        self.base_dir = Path(root_dir) / batch_name if batch_name else Path(root_dir)

    def path_for(self, name: str, asset: ImageAsset) -> Path:
        return self.base_dir / f"{name}{_EXTENSIONS.get(asset.media_type, '.img')}"

    def save(
        self,
        name: str,
        asset: ImageAsset,
        metadata: Mapping[str, Any] | None = None,
    ) -> Path:
        wire = to_wire_form(asset)
        image_path = self.path_for(name, asset)
        image_path.parent.mkdir(parents=True, exist_ok=True)
        image_path.write_bytes(wire.data)
        if metadata is not None:
            sidecar = image_path.with_suffix(".json")
            sidecar.write_text(json.dumps(dict(metadata), indent=2, default=str), encoding="utf-8")
        return image_path
