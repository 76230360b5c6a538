"""Fluent references to LiveDB projects, collections and documents.

References are plain value objects: building one never talks to the server.
Only their methods (create, get, add, update, delete, ...) issue requests,
each through the client's send_request().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from .api import LiveDBClient

DB_ROOT = "/api/db/index"
PROJECTS_PATH = f"{DB_ROOT}/projects"

DocumentId = Union[str, int]


@dataclass(frozen=True)
class DocumentRef:
    """Reference to a single document."""

    client: LiveDBClient = field(repr=False, compare=False)
    project_name: str
    collection_name: str
    id: str

    @property
    def path(self) -> str:
        return f"{DB_ROOT}/{self.project_name}/{self.collection_name}/{self.id}"

    def get(self) -> Any:
        """Fetch this document's data."""
        return self.client.send_request(self.path, method="GET")

    def update(self, data: dict[str, Any]) -> Any:
        return self.client.send_request(self.path, method="PUT", data=data)

    def delete(self) -> Any:
        return self.client.send_request(self.path, method="DELETE")


@dataclass(frozen=True)
class CollectionRef:
    """Reference to a collection inside a project."""

    client: LiveDBClient = field(repr=False, compare=False)
    project_name: str
    name: str

    @property
    def path(self) -> str:
        return f"{DB_ROOT}/{self.project_name}/{self.name}"

    def doc(self, id: DocumentId) -> DocumentRef:
        """Get a reference to a document in this collection."""
        return DocumentRef(self.client, self.project_name, self.name, str(id))

    def add(self, data: dict[str, Any]) -> Any:
        """Add a new document to this collection."""
        return self.client.send_request(self.path, method="POST", data=data)

    def get(self, filters: dict[str, Any] | None = None) -> Any:
        """Query documents in this collection.

        Args:
            filters: Query parameters, for example::

                {"age[gt]": 18, "role": "admin", "_limit": 10,
                 "_sort": "created_at:desc"}

        Returns:
            Decoded server response
        """
        return self.client.send_request(
            self.path, method="GET", query_parameters=filters
        )


@dataclass(frozen=True)
class ProjectRef:
    """Reference to a project."""

    client: LiveDBClient = field(repr=False, compare=False)
    name: str

    @property
    def path(self) -> str:
        return f"{DB_ROOT}/{self.name}"

    def collection(self, collection_name: str) -> CollectionRef:
        return CollectionRef(self.client, self.name, collection_name)

    def create(self, description: str = "") -> Any:
        """Create this project on the server."""
        return self.client.send_request(
            PROJECTS_PATH,
            method="POST",
            data={"name": self.name, "description": description},
        )

    def get_collections(self) -> Any:
        """List the collections of this project."""
        return self.client.send_request(self.path, method="GET")


class LiveDatabase:
    """Database access for a LiveDB client.

    Offers the fluent reference API (project(), collection()) as well as
    flat helpers taking project and collection names on every call.
    """

    def __init__(self, client: LiveDBClient):
        self._client = client

    def project(self, name: str) -> ProjectRef:
        return ProjectRef(self._client, name)

    def collection(self, project_name: str, collection_name: str) -> CollectionRef:
        """Shortcut for project(project_name).collection(collection_name)."""
        return self.project(project_name).collection(collection_name)

    def get_projects(self) -> Any:
        return self._client.send_request(PROJECTS_PATH, method="GET")

    def create_project(self, name: str, description: str = "") -> Any:
        return self.project(name).create(description=description)

    def get_collections(self, project_name: str) -> Any:
        return self.project(project_name).get_collections()

    def add(
        self, project_name: str, collection_name: str, data: dict[str, Any]
    ) -> Any:
        return self.collection(project_name, collection_name).add(data)

    def get(
        self,
        project_name: str,
        collection_name: str,
        filters: dict[str, Any] | None = None,
    ) -> Any:
        return self.collection(project_name, collection_name).get(filters=filters)

    def get_by_id(
        self, project_name: str, collection_name: str, id: DocumentId
    ) -> Any:
        return self.collection(project_name, collection_name).doc(id).get()

    def update(
        self,
        project_name: str,
        collection_name: str,
        id: DocumentId,
        data: dict[str, Any],
    ) -> Any:
        return self.collection(project_name, collection_name).doc(id).update(data)

    def delete(self, project_name: str, collection_name: str, id: DocumentId) -> Any:
        return self.collection(project_name, collection_name).doc(id).delete()
