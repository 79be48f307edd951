"""Test configuration and fixtures for the product service."""

from tests.fixtures import *  # noqa: F401,F403
