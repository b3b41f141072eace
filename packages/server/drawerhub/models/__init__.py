# SQLModel definitions: imported here to ensure metadata is populated for Alembic.
from .base import UUIDMixin, TimestampMixin, SoftDeleteMixin  # noqa: F401
from .user import User  # noqa: F401
from .drawer import Drawer, DrawerSettings  # noqa: F401
from .drawer_user import DrawerUser  # noqa: F401
from .invitation import DrawerInvitation  # noqa: F401
from .join_request import DrawerJoinRequest  # noqa: F401
