"""
Attribute schema declarations for provider resources.

Each resource declares its attributes with a type, how they may be set
(required, optional, computed), whether they are sensitive or force
replacement, and an optional validation rule. The lifecycle controller
uses the declaration to plan changes and redact output.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field


class AttributeType(str, Enum):
    """Value types an attribute may hold."""

    STRING = "string"
    INT = "int"
    BOOL = "bool"
    SET = "set"
    LIST = "list"


class Attribute(BaseModel):
    """Declaration of a single resource attribute."""

    name: str
    type: AttributeType
    description: str = ""
    required: bool = False
    optional: bool = False
    computed: bool = False
    sensitive: bool = False
    force_new: bool = False
    default: Any = None
    validate_func: Optional[Callable[[Any], Any]] = Field(default=None, exclude=True)

    @property
    def configurable(self) -> bool:
        """Whether callers may declare a value for this attribute."""
        return self.required or self.optional

    def describe(self) -> Dict[str, Any]:
        """Return a printable summary of the declaration."""
        flags = [
            flag for flag in ("required", "optional", "computed", "sensitive", "force_new")
            if getattr(self, flag)
        ]
        summary: Dict[str, Any] = {"type": self.type.value, "flags": flags}
        if self.default is not None:
            summary["default"] = self.default
        if self.description:
            summary["description"] = self.description
        return summary


class ResourceSchema(BaseModel):
    """Ordered collection of attribute declarations."""

    attributes: List[Attribute]

    def get(self, name: str) -> Attribute:
        for attribute in self.attributes:
            if attribute.name == name:
                return attribute
        raise KeyError(name)

    @property
    def sensitive(self) -> List[str]:
        return [a.name for a in self.attributes if a.sensitive]

    @property
    def configurable(self) -> List[Attribute]:
        return [a for a in self.attributes if a.configurable]

    def describe(self) -> Dict[str, Dict[str, Any]]:
        return {a.name: a.describe() for a in self.attributes}
