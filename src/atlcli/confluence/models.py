"""Confluence content API payloads."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class SpaceReference:
    key: str = ""
    name: str | None = None


@dataclass
class ContentBody:
    value: str = ""
    representation: str = "storage"


@dataclass
class PageBody:
    storage: ContentBody | None = None
    view: ContentBody | None = None


@dataclass
class PageVersion:
    number: int = 0
    message: str | None = None


@dataclass
class PageLinks:
    webui: str | None = None
    base: str | None = None
    self_url: str | None = field(default=None, metadata={"json": "self"})


@dataclass
class Page:
    id: str
    type: str = "page"
    status: str = "current"
    title: str = ""
    space: SpaceReference | None = None
    body: PageBody | None = None
    version: PageVersion | None = None
    links: PageLinks | None = field(default=None, metadata={"json": "_links"})

    @property
    def storage_value(self) -> str:
        if self.body and self.body.storage:
            return self.body.storage.value
        return ""

    @property
    def view_value(self) -> str:
        if self.body and self.body.view:
            return self.body.view.value
        return ""


@dataclass
class PageSearchResults:
    results: list[Page] = field(default_factory=list)
    start: int = 0
    limit: int = 0
    size: int = 0
