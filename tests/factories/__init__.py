"""Test factories for generating test data.

Re-exports all factories for convenient imports:
    from tests.factories import UserFactory, ProjectFactory, ...
"""

from tests.factories.base import BaseFactory, utc_now
from tests.factories.project import DeploymentFactory, ProjectAdminFactory, ProjectFactory
from tests.factories.user import UserFactory, identity_key

__all__ = [
    # Base
    "BaseFactory",
    "utc_now",
    # User
    "UserFactory",
    "identity_key",
    # Project
    "DeploymentFactory",
    "ProjectAdminFactory",
    "ProjectFactory",
]
