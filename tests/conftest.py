"""Test configuration and fixtures for identity-core."""

from tests.fixtures import *  # noqa: F401,F403
