"""Shared fixtures for the simulation tests."""

import json
import os

import numpy as np
import pytest

CONFIG_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'config.json')


@pytest.fixture
def sim_config():
    """The 'simulation' section of the shipped config.json."""
    with open(CONFIG_PATH, 'r') as f:
        return json.load(f)['simulation']


@pytest.fixture
def rng():
    return np.random.default_rng(42)
