"""TaskFlow client: typed API access and polling read projections."""

from .client import TaskFlowClient
from .main import connect
from .poller import ProjectionPoller

__all__ = ["TaskFlowClient", "ProjectionPoller", "connect"]
