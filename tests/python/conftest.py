"""
Pytest configuration and shared fixtures for qdata tests.
"""

import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root / "src"))

import scipy.sparse as sp

import qdata
from qdata.data import Data, Dense, CSR, register_type, unregister_type


# =============================================================================
# A Third Representation
# =============================================================================

class Diagonal(Data):
    """Square diagonal matrix storing only its diagonal.

    Implements the mandatory interface and nothing else, so every other
    operation on it goes through the fallback path.
    """

    def __init__(self, diag):
        diag = np.asarray(diag, dtype=np.complex128).reshape(-1)
        super().__init__((diag.size, diag.size))
        self._diag = qdata.Buffer(diag, dtype=np.complex128)

    @property
    def diagonal(self):
        return self._diag.storage

    @classmethod
    def from_reference(cls, ref):
        return cls(np.diag(ref.as_ndarray()).copy())

    def to_reference(self):
        return Dense(np.diag(self.diagonal))

    def copy(self):
        return Diagonal(self.diagonal)

    def mul(self, scalar):
        return Diagonal(self.diagonal * scalar)

    def matmul(self, other):
        return Diagonal(self.diagonal * other.diagonal)

    def add(self, other):
        return Diagonal(self.diagonal + other.diagonal)

    def equal(self, other, atol):
        return bool(np.allclose(self.diagonal, other.diagonal, rtol=0, atol=atol))


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def reset_config():
    """Every test starts and ends with default configuration."""
    qdata.config.reset()
    yield
    qdata.config.reset()


@pytest.fixture
def diagonal_type():
    """Register the Diagonal representation for the duration of a test."""
    register_type(Diagonal, aliases=("diag",))
    yield Diagonal
    unregister_type(Diagonal)


@pytest.fixture
def sigma_x():
    return np.array([[0, 1], [1, 0]], dtype=np.complex128)


@pytest.fixture
def sigma_y():
    return np.array([[0, -1j], [1j, 0]], dtype=np.complex128)


@pytest.fixture
def sigma_z():
    return np.array([[1, 0], [0, -1]], dtype=np.complex128)


@pytest.fixture
def dense_matrix_small():
    """Create a small dense numpy matrix for comparison (3x4).

    Matrix:
    [[1, 0, 2, 0],
     [0, 3, 0, 4j],
     [5, 0, 0, 6]]
    """
    return np.array([
        [1, 0, 2, 0],
        [0, 3, 0, 4j],
        [5, 0, 0, 6]
    ], dtype=np.complex128)


@pytest.fixture
def small_csr_matrix():
    """The dense_matrix_small values as CSR built from raw arrays."""
    data = np.array([1, 2, 3, 4j, 5, 6], dtype=np.complex128)
    indices = np.array([0, 2, 1, 3, 0, 3], dtype=np.int64)
    indptr = np.array([0, 2, 4, 6], dtype=np.int64)
    return CSR((data, indices, indptr), shape=(3, 4))


@pytest.fixture
def random_square():
    """Random complex 6x6 matrix with roughly half its entries zero."""
    rng = np.random.default_rng(42)
    mat = rng.standard_normal((6, 6)) + 1j * rng.standard_normal((6, 6))
    mat[rng.random((6, 6)) < 0.5] = 0
    return mat


@pytest.fixture
def scipy_csr_matrix():
    """Create a scipy CSR matrix for interop testing."""
    return sp.csr_matrix([
        [1, 0, 2, 0],
        [0, 3, 0, 4],
        [5, 0, 0, 6]
    ], dtype=np.float64)
