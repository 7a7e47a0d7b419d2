"""
Tests for the built-in operations.

Every operation is checked against numpy/scipy for each built-in
representation, so specialisations and the reference implementation
are held to the same results.
"""

import pytest
import numpy as np
import scipy.linalg
import scipy.sparse as sp

import qdata
from qdata.data import Dense, CSR, cast, export_view, invoke, ops


REPRESENTATIONS = ["dense", "csr"]


@pytest.fixture(params=REPRESENTATIONS)
def rep(request):
    """Representation alias; fallback warnings are silenced for these tests."""
    qdata.set_fallback_warnings(False)
    return request.param


def as_data(arr, rep):
    return cast(Dense(arr), rep)


# =============================================================================
# Arithmetic Tests
# =============================================================================

class TestArithmetic:
    """Test element-wise and product operations."""

    def test_add(self, rep, random_square):
        value = as_data(random_square, rep)
        result = invoke("add", value, value)
        assert isinstance(result, type(value))
        np.testing.assert_allclose(result.to_array(), 2 * random_square)

    def test_sub(self, rep, random_square):
        value = as_data(random_square, rep)
        other = as_data(np.eye(6), rep)
        result = invoke("sub", value, other)
        assert isinstance(result, type(value))
        np.testing.assert_allclose(result.to_array(), random_square - np.eye(6))

    def test_sub_shape_mismatch(self, rep):
        with pytest.raises(ValueError):
            invoke("sub", as_data(np.eye(2), rep), as_data(np.eye(3), rep))

    def test_mul(self, rep, random_square):
        result = invoke("mul", as_data(random_square, rep), -0.5j)
        np.testing.assert_allclose(result.to_array(), -0.5j * random_square)

    def test_neg(self, rep, random_square):
        result = invoke("neg", as_data(random_square, rep))
        np.testing.assert_allclose(result.to_array(), -random_square)

    def test_matmul(self, rep, random_square):
        value = as_data(random_square, rep)
        result = invoke("matmul", value, value)
        np.testing.assert_allclose(result.to_array(), random_square @ random_square)

    def test_matmul_rectangular(self, rep, dense_matrix_small):
        left = as_data(dense_matrix_small, rep)
        right = as_data(dense_matrix_small.T, rep)
        result = invoke("matmul", left, right)
        assert result.shape == (3, 3)
        np.testing.assert_allclose(result.to_array(), dense_matrix_small @ dense_matrix_small.T)

    def test_kron(self, rep, sigma_x, sigma_z):
        result = invoke("kron", as_data(sigma_x, rep), as_data(sigma_z, rep))
        assert result.shape == (4, 4)
        np.testing.assert_allclose(result.to_array(), np.kron(sigma_x, sigma_z))

    def test_equal(self, rep, random_square):
        value = as_data(random_square, rep)
        assert invoke("equal", value, value.copy())
        assert not invoke("equal", value, invoke("mul", value, 2))

    def test_equal_mixed_types(self, random_square):
        qdata.set_fallback_warnings(False)
        assert invoke("equal", Dense(random_square), cast(Dense(random_square), "csr"))


# =============================================================================
# Linear Algebra Tests
# =============================================================================

class TestLinearAlgebra:
    """Test transposition, traces, norms and functions of matrices."""

    def test_conj(self, rep, dense_matrix_small):
        result = invoke("conj", as_data(dense_matrix_small, rep))
        np.testing.assert_allclose(result.to_array(), dense_matrix_small.conj())

    def test_conj_leaves_input(self, rep, dense_matrix_small):
        value = as_data(dense_matrix_small, rep)
        invoke("conj", value)
        np.testing.assert_allclose(value.to_array(), dense_matrix_small)

    def test_transpose(self, rep, dense_matrix_small):
        result = invoke("transpose", as_data(dense_matrix_small, rep))
        assert result.shape == (4, 3)
        np.testing.assert_allclose(result.to_array(), dense_matrix_small.T)

    def test_adjoint(self, rep, dense_matrix_small):
        result = invoke("adjoint", as_data(dense_matrix_small, rep))
        np.testing.assert_allclose(result.to_array(), dense_matrix_small.conj().T)

    def test_trace(self, rep, random_square):
        result = invoke("trace", as_data(random_square, rep))
        assert isinstance(result, complex)
        assert result == pytest.approx(np.trace(random_square))

    def test_trace_requires_square(self, rep, dense_matrix_small):
        with pytest.raises(ValueError, match="square"):
            invoke("trace", as_data(dense_matrix_small, rep))

    def test_frobenius_norm(self, rep, random_square):
        result = invoke("frobenius_norm", as_data(random_square, rep))
        assert result == pytest.approx(np.linalg.norm(random_square))

    def test_isherm(self, rep, sigma_y, dense_matrix_small):
        assert invoke("isherm", as_data(sigma_y, rep))
        assert not invoke("isherm", as_data(np.array([[0, 1], [0, 0]]), rep))
        assert not invoke("isherm", as_data(dense_matrix_small, rep))

    def test_isherm_tolerance(self, rep):
        almost = np.array([[1, 1e-8], [0, 1]])
        assert not invoke("isherm", as_data(almost, rep))
        assert invoke("isherm", as_data(almost, rep), tol=1e-6)

    def test_expm(self, rep, sigma_x):
        generator = -0.5j * np.pi * sigma_x
        result = invoke("expm", as_data(generator, rep))
        assert isinstance(result, CSR if rep == "csr" else Dense)
        np.testing.assert_allclose(result.to_array(), scipy.linalg.expm(generator), atol=1e-10)

    def test_expm_of_zero(self, rep):
        result = invoke("expm", as_data(np.zeros((3, 3)), rep))
        np.testing.assert_allclose(result.to_array(), np.eye(3))

    @pytest.mark.parametrize("n", [0, 1, 2, 5])
    def test_pow(self, rep, random_square, n):
        result = invoke("pow", as_data(random_square, rep), n)
        np.testing.assert_allclose(
            result.to_array(), np.linalg.matrix_power(random_square, n), rtol=1e-10, atol=1e-9
        )

    @pytest.mark.parametrize("n", [-1, 1.5])
    def test_pow_invalid(self, rep, n):
        with pytest.raises(ValueError):
            invoke("pow", as_data(np.eye(2), rep), n)


# =============================================================================
# Partial Trace Tests
# =============================================================================

class TestPartialTrace:
    """Test ptrace over composite operators."""

    @pytest.fixture
    def product_state(self):
        rng = np.random.default_rng(7)
        a = rng.standard_normal((2, 2)) + 1j * rng.standard_normal((2, 2))
        b = np.diag([0.25, 0.25, 0.5]).astype(np.complex128)
        return a, b, np.kron(a, b)

    def test_keep_first(self, rep, product_state):
        a, b, rho = product_state
        result = invoke("ptrace", as_data(rho, rep), [2, 3], [0])
        assert result.shape == (2, 2)
        np.testing.assert_allclose(result.to_array(), a * np.trace(b))

    def test_keep_second(self, rep, product_state):
        a, b, rho = product_state
        result = invoke("ptrace", as_data(rho, rep), [2, 3], [1])
        np.testing.assert_allclose(result.to_array(), b * np.trace(a))

    def test_keep_all(self, rep, product_state):
        _, _, rho = product_state
        result = invoke("ptrace", as_data(rho, rep), [2, 3], [1, 0])
        np.testing.assert_allclose(result.to_array(), rho)

    def test_keep_none(self, rep, product_state):
        _, _, rho = product_state
        result = invoke("ptrace", as_data(rho, rep), [2, 3], [])
        assert result.shape == (1, 1)
        assert result.to_array()[0, 0] == pytest.approx(np.trace(rho))

    def test_result_type_follows_operand(self, rep, product_state):
        _, _, rho = product_state
        value = as_data(rho, rep)
        assert type(invoke("ptrace", value, [2, 3], [0])) is type(value)

    def test_dims_mismatch(self, rep):
        with pytest.raises(ValueError, match="dims"):
            invoke("ptrace", as_data(np.eye(6), rep), [2, 2], [0])

    def test_selection_out_of_range(self, rep):
        with pytest.raises(ValueError, match="out of range"):
            invoke("ptrace", as_data(np.eye(4), rep), [2, 2], [2])


# =============================================================================
# Direct Implementation Tests
# =============================================================================

class TestDirectImplementations:
    """Implementations are plain functions callable without dispatch."""

    def test_csr_functions(self, random_square):
        value = CSR(sp.csr_matrix(random_square))
        herm = ops.matmul.get((CSR, CSR))(ops.adjoint_csr(value), value)
        assert isinstance(herm, CSR)
        assert ops.isherm_csr(herm, 1e-10)

    def test_neg_csr_keeps_sparsity(self, small_csr_matrix):
        assert ops.neg_csr(small_csr_matrix).nnz == small_csr_matrix.nnz

    def test_pow_csr_zero_is_identity(self):
        result = ops.pow_csr(CSR.identity(3, 2), 0)
        np.testing.assert_array_equal(result.to_array(), np.eye(3))


# =============================================================================
# Result Storage Tests
# =============================================================================

VECTOR = np.array([[1.0], [2.0j], [-3.0]])
SQUARE = np.array([[1.0, 2.0j], [0.5, -1.0]])


def storages(value):
    if isinstance(value, CSR):
        return [buf.storage for buf in value.buffers]
    return [value.buffer.storage]


class TestResultStorage:
    """Results own fresh storage, never a view of an operand's Buffers."""

    @pytest.mark.parametrize("name,arr,args", [
        ("transpose", VECTOR, ()),
        ("transpose", VECTOR.T, ()),
        ("adjoint", VECTOR, ()),
        ("conj", VECTOR, ()),
        ("neg", SQUARE, ()),
        ("mul", SQUARE, (1,)),
        ("pow", SQUARE, (0,)),
        ("pow", SQUARE, (1,)),
        ("pow", np.eye(2), (1,)),
        ("expm", SQUARE, ()),
        ("ptrace", np.kron(SQUARE, np.eye(2)), ([2, 2], [0, 1])),
    ], ids=[
        "transpose-ket", "transpose-bra", "adjoint", "conj", "neg", "mul",
        "pow0", "pow1", "pow1-identity", "expm", "ptrace-keep-all",
    ])
    def test_no_shared_memory(self, rep, name, arr, args):
        value = as_data(arr, rep)
        result = invoke(name, value, *args)
        for source in storages(value):
            for target in storages(result):
                assert not np.shares_memory(source, target)

    def test_writes_through_export_stay_local(self):
        ket = Dense([[1], [2]])
        bra = invoke("transpose", ket)
        export_view(ket.buffer, writable=True)[0] = 99
        assert bra.to_array()[0, 0] == 1

    def test_fallback_result_is_fresh(self, diagonal_type):
        qdata.set_fallback_warnings(False)
        value = diagonal_type([1, 2j])
        result = invoke("transpose", value)
        assert isinstance(result, diagonal_type)
        assert not np.shares_memory(value.diagonal, result.diagonal)
