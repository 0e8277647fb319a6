"""Grid document models."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _dump(model: BaseModel, **kwargs: Any) -> Dict[str, Any]:
    # Declared optional fields never assigned stay out; explicit nulls and extras are kept.
    payload = model.model_dump(mode="json", **kwargs)
    for name in type(model).model_fields:
        if name not in model.model_fields_set and payload.get(name) is None:
            payload.pop(name, None)
    return payload


class GridItem(BaseModel):
    """One tile of the grid.

    Only ``type`` and ``id`` are required. Any other field is carried through
    untouched so unknown item kinds survive a publish/fetch cycle.
    """

    model_config = ConfigDict(extra="allow")

    type: str
    id: str

    def to_payload(self) -> Dict[str, Any]:
        return _dump(self)


class MiniAppItem(GridItem):
    type: Literal["miniapp"] = "miniapp"
    title: Optional[str] = None
    backgroundColor: Optional[str] = None
    textColor: Optional[str] = None
    text: Optional[str] = None


class ExternalItem(GridItem):
    type: Literal["external"] = "external"
    title: Optional[str] = None
    url: Optional[str] = None


class IframeItem(GridItem):
    type: Literal["iframe"] = "iframe"
    title: Optional[str] = None
    src: Optional[str] = None


ITEM_TYPES: Dict[str, Type[GridItem]] = {
    "miniapp": MiniAppItem,
    "external": ExternalItem,
    "iframe": IframeItem,
}


def parse_item(raw: Any) -> GridItem:
    """Build the variant matching ``raw["type"]``, falling back to :class:`GridItem`."""

    if isinstance(raw, GridItem):
        return raw
    if not isinstance(raw, dict):
        raise ValueError(f"grid item must be an object, got {type(raw).__name__}")
    kind = raw.get("type")
    model = ITEM_TYPES.get(kind, GridItem) if isinstance(kind, str) else GridItem
    return model.model_validate(raw)


class GridDocument(BaseModel):
    """Layout of linked items shown on a profile's grid."""

    model_config = ConfigDict(extra="allow")

    isEditable: bool
    items: List[GridItem] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def _dispatch_items(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [parse_item(entry) for entry in value]
        return value

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON-ready mapping stored on chain."""

        payload = _dump(self, exclude={"items"})
        payload["items"] = [item.to_payload() for item in self.items]
        return payload


EXAMPLE_GRID = GridDocument(
    isEditable=True,
    items=[
        MiniAppItem(
            id="home",
            title="Home",
            backgroundColor="#fe005b",
            textColor="#ffffff",
            text="Welcome",
        ),
        ExternalItem(id="twitter", title="Twitter", url="https://twitter.com"),
        IframeItem(id="dashboard", title="Dashboard", src="https://example.com/embed"),
    ],
)


__all__ = [
    "EXAMPLE_GRID",
    "ExternalItem",
    "GridDocument",
    "GridItem",
    "IframeItem",
    "ITEM_TYPES",
    "MiniAppItem",
    "parse_item",
]
