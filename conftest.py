"""Shared pytest fixtures for Qt application lifecycle and sample data."""

import sys
from pathlib import Path

import pytest
from PySide6.QtCore import QCoreApplication

TESTDATA_DIR = Path(__file__).with_name("testdata")


@pytest.fixture(scope="session")
def app():
    """Provide a single QCoreApplication for all tests."""
    instance = QCoreApplication.instance()
    if instance is None:
        instance = QCoreApplication(sys.argv)

    yield instance

    QCoreApplication.processEvents()


@pytest.fixture
def lambda_api_dir():
    return TESTDATA_DIR / "aws_lambda_api"
