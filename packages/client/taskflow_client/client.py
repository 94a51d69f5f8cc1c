"""
HTTP client for the TaskFlow API.

Reads return typed models and raise ``httpx.HTTPStatusError`` on failure.
Mutations never raise for server-side failures: they return an
``OperationResult`` whose ``kind``/``code`` come from the server's error
detail. Any 401 after a session was established counts as a sign-out.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar, Union

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from taskflow_shared.schemas.common import ErrorKind, OperationResult, Role, TaskStatus
from taskflow_shared.schemas.dashboard import DashboardRead, ProjectTaskGroup
from taskflow_shared.schemas.invitations import InvitationLink, InvitationRead, InvitationView
from taskflow_shared.schemas.organizations import MemberRead, OrgListItem, OrgRead
from taskflow_shared.schemas.projects import ProjectRead
from taskflow_shared.schemas.tasks import BoardRead, TaskRead
from taskflow_shared.schemas.users import AuthResponse, CurrentUserResponse, ProfileRead

from .config import ClientConfig

log = structlog.get_logger()

M = TypeVar("M", bound=BaseModel)
SignOutCallback = Callable[[], Union[None, Awaitable[None]]]

KIND_BY_STATUS: dict[int, ErrorKind] = {
    401: ErrorKind.NOT_AUTHORIZED,
    403: ErrorKind.NOT_AUTHORIZED,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.CONFLICT,
    410: ErrorKind.EXPIRED,
}


class TaskFlowClient:
    """Async client for one signed-in (or anonymous) TaskFlow session."""

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        verify_tls: bool = True,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            verify=verify_tls,
            timeout=timeout,
            transport=transport,
        )
        self._token = token
        self._sign_out_callbacks: list[SignOutCallback] = []

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs) -> "TaskFlowClient":
        return cls(
            config.server.url,
            verify_tls=config.server.verify_tls,
            timeout=config.server.request_timeout_seconds,
            **kwargs,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "TaskFlowClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    @property
    def signed_in(self) -> bool:
        return self._token is not None

    def on_sign_out(self, callback: SignOutCallback) -> None:
        """Register a callback fired once whenever the session ends."""
        self._sign_out_callbacks.append(callback)

    async def _signed_out(self, reason: str) -> None:
        if self._token is None:
            return
        self._token = None
        log.info("client.signed_out", reason=reason)
        for callback in list(self._sign_out_callbacks):
            try:
                outcome = callback()
                if asyncio.iscoroutine(outcome):
                    await outcome
            except Exception:
                log.exception("client.sign_out_callback_failed")

    def _headers(self) -> dict[str, str]:
        if self._token is None:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        response = await self._http.request(method, path, headers=self._headers(), **kwargs)
        if response.status_code == 401:
            await self._signed_out("unauthorized")
        return response

    async def register(
        self, email: str, password: str, full_name: Optional[str] = None
    ) -> AuthResponse:
        body = {"email": email, "password": password, "full_name": full_name}
        response = await self._request("POST", "/auth/register", json=body)
        response.raise_for_status()
        auth = AuthResponse.model_validate(response.json())
        self._token = auth.access_token
        return auth

    async def login(self, email: str, password: str) -> AuthResponse:
        response = await self._request(
            "POST", "/auth/login", json={"email": email, "password": password}
        )
        response.raise_for_status()
        auth = AuthResponse.model_validate(response.json())
        self._token = auth.access_token
        log.info("client.signed_in", user_id=str(auth.user_id))
        return auth

    async def logout(self) -> None:
        if self._token is None:
            return
        try:
            await self._http.post("/auth/logout", headers=self._headers())
        except httpx.HTTPError as exc:
            log.warning("client.logout_request_failed", error=str(exc))
        await self._signed_out("logout")

    async def current_user(self) -> Optional[CurrentUserResponse]:
        """The signed-in user, or None when there is no live session."""
        if self._token is None:
            return None
        response = await self._request("GET", "/auth/me")
        if response.status_code == 401:
            return None
        response.raise_for_status()
        return CurrentUserResponse.model_validate(response.json())

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _get(self, path: str, model: Type[M], **kwargs) -> M:
        response = await self._request("GET", path, **kwargs)
        response.raise_for_status()
        return model.model_validate(response.json())

    async def _get_list(self, path: str, model: Type[M], *, key: Optional[str] = None) -> list[M]:
        response = await self._request("GET", path)
        response.raise_for_status()
        payload = response.json()
        items = payload[key] if key else payload
        return [model.model_validate(item) for item in items]

    async def _mutate(
        self,
        method: str,
        path: str,
        model: Optional[Type[M]] = None,
        *,
        json: Any = None,
    ) -> OperationResult:
        try:
            response = await self._request(method, path, json=json)
        except httpx.HTTPError as exc:
            log.warning("client.request_failed", method=method, path=path, error=str(exc))
            return OperationResult.failure(ErrorKind.STORE_ERROR, str(exc))

        if response.is_success:
            if model is None or response.status_code == 204 or not response.content:
                return OperationResult.ok()
            return OperationResult.ok(model.model_validate(response.json()))
        return _failure_from_response(response, model)

    # ------------------------------------------------------------------
    # Organizations and members
    # ------------------------------------------------------------------

    async def list_orgs(self) -> list[OrgListItem]:
        return await self._get_list("/api/v1/orgs", OrgListItem, key="data")

    async def get_org(self, org_id: uuid.UUID) -> OrgRead:
        return await self._get(f"/api/v1/orgs/{org_id}", OrgRead)

    async def create_org(self, name: str, description: Optional[str] = None) -> OperationResult:
        return await self._mutate(
            "POST", "/api/v1/orgs", OrgRead, json={"name": name, "description": description}
        )

    async def delete_org(self, org_id: uuid.UUID) -> OperationResult:
        return await self._mutate("DELETE", f"/api/v1/orgs/{org_id}")

    async def list_members(self, org_id: uuid.UUID) -> list[MemberRead]:
        return await self._get_list(f"/api/v1/orgs/{org_id}/members", MemberRead, key="data")

    async def update_member_role(
        self, org_id: uuid.UUID, user_id: uuid.UUID, role: Role
    ) -> OperationResult:
        return await self._mutate(
            "PATCH",
            f"/api/v1/orgs/{org_id}/members/{user_id}",
            MemberRead,
            json={"role": Role(role).value},
        )

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    async def create_invitation(
        self, org_id: uuid.UUID, email: str, role: Role = Role.MEMBER
    ) -> OperationResult:
        return await self._mutate(
            "POST",
            f"/api/v1/orgs/{org_id}/invitations",
            InvitationLink,
            json={"email": email, "role": Role(role).value},
        )

    async def list_invitations(self, org_id: uuid.UUID) -> list[InvitationRead]:
        return await self._get_list(
            f"/api/v1/orgs/{org_id}/invitations", InvitationRead, key="data"
        )

    async def revoke_invitation(
        self, org_id: uuid.UUID, invitation_id: uuid.UUID
    ) -> OperationResult:
        return await self._mutate("DELETE", f"/api/v1/orgs/{org_id}/invitations/{invitation_id}")

    async def get_invitation(self, token: str) -> InvitationView:
        return await self._get(f"/api/v1/invitations/{token}", InvitationView)

    async def accept_invitation(self, token: str) -> OperationResult:
        return await self._mutate("POST", f"/api/v1/invitations/{token}/accept", MemberRead)

    async def decline_invitation(self, token: str) -> OperationResult:
        return await self._mutate("POST", f"/api/v1/invitations/{token}/decline")

    # ------------------------------------------------------------------
    # Projects and tasks
    # ------------------------------------------------------------------

    async def list_projects(self, org_id: uuid.UUID) -> list[ProjectRead]:
        return await self._get_list(f"/api/v1/orgs/{org_id}/projects", ProjectRead)

    async def create_project(
        self, org_id: uuid.UUID, name: str, description: Optional[str] = None
    ) -> OperationResult:
        return await self._mutate(
            "POST",
            f"/api/v1/orgs/{org_id}/projects",
            ProjectRead,
            json={"name": name, "description": description},
        )

    async def delete_project(self, project_id: uuid.UUID) -> OperationResult:
        return await self._mutate("DELETE", f"/api/v1/projects/{project_id}")

    async def list_tasks(self, project_id: uuid.UUID) -> list[TaskRead]:
        return await self._get_list(f"/api/v1/projects/{project_id}/tasks", TaskRead)

    async def list_org_tasks(self, org_id: uuid.UUID) -> list[ProjectTaskGroup]:
        return await self._get_list(f"/api/v1/orgs/{org_id}/tasks", ProjectTaskGroup)

    async def get_board(self, project_id: uuid.UUID) -> BoardRead:
        return await self._get(f"/api/v1/projects/{project_id}/board", BoardRead)

    async def get_task(self, task_id: uuid.UUID) -> TaskRead:
        return await self._get(f"/api/v1/tasks/{task_id}", TaskRead)

    async def create_task(self, project_id: uuid.UUID, title: str, **fields) -> OperationResult:
        return await self._mutate(
            "POST",
            f"/api/v1/projects/{project_id}/tasks",
            TaskRead,
            json={"title": title, **fields},
        )

    async def update_task(self, task_id: uuid.UUID, **changes) -> OperationResult:
        return await self._mutate("PATCH", f"/api/v1/tasks/{task_id}", TaskRead, json=changes)

    async def delete_task(self, task_id: uuid.UUID) -> OperationResult:
        return await self._mutate("DELETE", f"/api/v1/tasks/{task_id}")

    async def set_task_status(self, task_id: uuid.UUID, status: TaskStatus) -> OperationResult:
        """On denial the result's data is the server's current task, for re-sync."""
        return await self._mutate(
            "POST",
            f"/api/v1/tasks/{task_id}/status",
            TaskRead,
            json={"status": TaskStatus(status).value},
        )

    async def assign(
        self, task_id: uuid.UUID, user_id: Optional[uuid.UUID] = None
    ) -> OperationResult:
        body = {"user_id": str(user_id) if user_id else None}
        return await self._mutate("POST", f"/api/v1/tasks/{task_id}/assignments", TaskRead, json=body)

    async def unassign(self, task_id: uuid.UUID, user_id: uuid.UUID) -> OperationResult:
        return await self._mutate(
            "DELETE", f"/api/v1/tasks/{task_id}/assignments/{user_id}", TaskRead
        )

    # ------------------------------------------------------------------
    # Profile and dashboard
    # ------------------------------------------------------------------

    async def get_profile(self) -> ProfileRead:
        return await self._get("/api/v1/profile", ProfileRead)

    async def update_profile(self, **changes) -> OperationResult:
        return await self._mutate("PATCH", "/api/v1/profile", ProfileRead, json=changes)

    async def get_dashboard(self) -> DashboardRead:
        return await self._get("/api/v1/dashboard", DashboardRead)


def _failure_from_response(
    response: httpx.Response, model: Optional[Type[M]] = None
) -> OperationResult:
    """Rebuild a failed OperationResult from an error response."""
    kind = KIND_BY_STATUS.get(response.status_code, ErrorKind.STORE_ERROR)
    try:
        payload = response.json()
    except ValueError:
        payload = None
    detail = payload.get("detail") if isinstance(payload, dict) else None

    if not isinstance(detail, dict):
        message = detail if isinstance(detail, str) else response.reason_phrase
        return OperationResult.failure(kind, str(message))

    try:
        kind = ErrorKind(detail.get("kind"))
    except ValueError:
        pass

    data = detail.get("data")
    if data is not None and model is not None:
        try:
            data = model.model_validate(data)
        except ValidationError:
            log.warning("client.unparseable_error_data", status=response.status_code)

    return OperationResult.failure(
        kind,
        detail.get("message") or response.reason_phrase,
        code=detail.get("code"),
        data=data,
    )
