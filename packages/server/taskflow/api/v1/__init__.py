"""
API v1 Router

Org-scoped endpoints are prefixed with /orgs/{org_id}; projects and tasks
are addressed directly by id and resolve their org from the store.
"""

from fastapi import APIRouter

from . import dashboard, invitations, organizations, profile, projects, tasks

router = APIRouter()

# Organization routes (non-org-scoped: list, create)
router.include_router(organizations.router_global)

# Organization routes (org-scoped: get, delete, members)
router.include_router(organizations.router_scoped, prefix="/orgs/{org_id}")

# Include resource routers
router.include_router(
    invitations.router_scoped, prefix="/orgs/{org_id}/invitations", tags=["Invitations"]
)
router.include_router(invitations.router_public, prefix="/invitations", tags=["Invitations"])
router.include_router(projects.router_scoped, prefix="/orgs/{org_id}/projects", tags=["Projects"])
router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(tasks.router_org, prefix="/orgs/{org_id}", tags=["Tasks"])
router.include_router(tasks.router_project, prefix="/projects/{project_id}", tags=["Tasks"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(profile.router, prefix="/profile", tags=["Profile"])
router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])


@router.get("/", tags=["API"])
async def api_root():
    """API root — returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/orgs",
            "/orgs/{org_id}/members",
            "/orgs/{org_id}/invitations",
            "/orgs/{org_id}/projects",
            "/orgs/{org_id}/tasks",
            "/invitations/{token}",
            "/projects/{project_id}/tasks",
            "/projects/{project_id}/board",
            "/tasks/{task_id}",
            "/profile",
            "/dashboard",
        ],
    }
