"""
Local state file for the lifecycle controller.

State maps resource addresses (``<type>.<name>``) to the resource type,
its identifier and the attributes recorded by the last read. Sensitive
attributes are persisted in clear text, so the file must be protected
like any other credential store.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

STATE_VERSION = 1


class ResourceInstance(BaseModel):
    """Recorded state of one resource."""

    type: str
    id: str
    attributes: Dict[str, Any] = Field(default_factory=dict)
    tainted: bool = False

    model_config = ConfigDict(extra="forbid")


class StateDocument(BaseModel):
    """On-disk state layout."""

    version: int = STATE_VERSION
    serial: int = 0
    resources: Dict[str, ResourceInstance] = Field(default_factory=dict)


class StateStore:
    """JSON state file with atomic writes."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self.document = self._load()

    def _load(self) -> StateDocument:
        if not self.path.exists():
            return StateDocument()
        with open(self.path, "r") as f:
            return StateDocument.model_validate(json.load(f))

    def save(self) -> None:
        """Write state atomically with owner-only permissions."""
        self.document.serial += 1
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(self.document.model_dump(mode="json"), f, indent=2, sort_keys=True)
            f.write("\n")
        os.replace(tmp_path, self.path)

    def get(self, address: str) -> Optional[ResourceInstance]:
        return self.document.resources.get(address)

    def put(self, address: str, type_name: str, state: BaseModel, tainted: bool = False) -> None:
        """
        Record a resource from its state model.

        A tainted resource exists on the server but was never finished, so
        the next plan replaces it.
        """
        attributes = state.model_dump(mode="json")
        resource_id = attributes.pop("id", None)
        if not resource_id:
            raise ValueError(f"cannot record {address} without an ID")
        self.document.resources[address] = ResourceInstance(
            type=type_name, id=resource_id, attributes=attributes, tainted=tainted
        )

    def remove(self, address: str) -> None:
        self.document.resources.pop(address, None)

    def addresses(self) -> List[str]:
        return sorted(self.document.resources)

    def __iter__(self) -> Iterator[str]:
        return iter(self.addresses())

    def __contains__(self, address: str) -> bool:
        return address in self.document.resources

    def __len__(self) -> int:
        return len(self.document.resources)
