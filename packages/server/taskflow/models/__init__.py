# SQLModel definitions — imported here to ensure metadata is populated before create_all.
from .base import UUIDMixin, CreatedAtMixin  # noqa: F401
from .user import User  # noqa: F401
from .profile import Profile  # noqa: F401
from .organization import Organization  # noqa: F401
from .membership import Membership  # noqa: F401
from .project import Project  # noqa: F401
from .task import Task  # noqa: F401
from .assignment import TaskAssignment  # noqa: F401
from .invitation import Invitation  # noqa: F401
