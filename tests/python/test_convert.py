"""
Tests for the type registry, casting and creation.
"""

import pytest
import numpy as np
import scipy.sparse as sp

from qdata import ConversionInvariantError, UnsupportedTypeError
from qdata.data import (
    Data, Dense, CSR, Ownership,
    cast, create, to_type, check_interface,
    register_type, unregister_type, registered_types, register_converter,
)


# =============================================================================
# Type Registry Tests
# =============================================================================

class TestTypeRegistry:
    """Test representation registration and alias lookup."""

    def test_builtin_types(self):
        types = registered_types()
        assert Dense in types
        assert CSR in types

    @pytest.mark.parametrize("alias,expected", [
        ("dense", Dense),
        ("Dense", Dense),
        ("ndarray", Dense),
        ("csr", CSR),
        ("CSR", CSR),
        ("sparse", CSR),
    ])
    def test_aliases(self, alias, expected):
        assert to_type(alias) is expected

    def test_class_passes_through(self):
        assert to_type(CSR) is CSR

    def test_unknown_alias(self):
        with pytest.raises(UnsupportedTypeError, match="Unknown data type"):
            to_type("coo")

    def test_non_data_class(self):
        with pytest.raises(UnsupportedTypeError):
            to_type(np.ndarray)

    def test_abstract_class(self):
        with pytest.raises(UnsupportedTypeError, match="mandatory interface"):
            check_interface(Data)

    def test_incomplete_representation(self):
        class Partial(Data):
            def copy(self):
                return self

        with pytest.raises(UnsupportedTypeError):
            register_type(Partial)

    def test_register_and_unregister(self, diagonal_type):
        assert diagonal_type in registered_types()
        assert to_type("DIAG") is diagonal_type
        assert to_type("Diagonal") is diagonal_type

        unregister_type(diagonal_type)
        assert diagonal_type not in registered_types()
        with pytest.raises(UnsupportedTypeError):
            to_type("diag")

    def test_alias_last_registration_wins(self, diagonal_type):
        class OtherDiagonal(diagonal_type):
            pass

        register_type(OtherDiagonal, aliases=("diag",))
        try:
            assert to_type("diag") is OtherDiagonal
        finally:
            unregister_type(OtherDiagonal)


# =============================================================================
# Cast Tests
# =============================================================================

class TestCast:
    """Test conversion between representations."""

    def test_dense_to_csr(self, dense_matrix_small):
        result = cast(Dense(dense_matrix_small), "csr")
        assert isinstance(result, CSR)
        assert result.nnz == 6
        np.testing.assert_array_equal(result.to_array(), dense_matrix_small)

    def test_csr_to_dense(self, small_csr_matrix, dense_matrix_small):
        result = cast(small_csr_matrix, Dense)
        assert isinstance(result, Dense)
        np.testing.assert_array_equal(result.to_array(), dense_matrix_small)

    def test_same_type_is_copy(self, small_csr_matrix):
        result = cast(small_csr_matrix, CSR)
        assert result is not small_csr_matrix
        assert result.data_buffer is not small_csr_matrix.data_buffer
        assert result.equal(small_csr_matrix, atol=0)

    def test_two_hop_to_third_type(self, diagonal_type):
        sparse = CSR(sp.diags([1, 2, 3], format='csr'))
        result = cast(sparse, "diag")
        assert isinstance(result, diagonal_type)
        np.testing.assert_array_equal(result.diagonal, [1, 2, 3])

    def test_direct_converter_is_used(self, diagonal_type):
        calls = []

        def csr_to_diagonal(value):
            calls.append(value)
            return diagonal_type(value.as_scipy().diagonal())

        register_converter(CSR, diagonal_type, csr_to_diagonal)
        result = cast(CSR.identity(3), diagonal_type)
        assert len(calls) == 1
        np.testing.assert_array_equal(result.diagonal, [1, 1, 1])

    def test_converter_changing_shape(self, diagonal_type):
        register_converter(Dense, diagonal_type, lambda value: diagonal_type([1.0]))
        with pytest.raises(ConversionInvariantError, match="changed shape"):
            cast(Dense(np.eye(2)), diagonal_type)

    def test_converter_returning_wrong_type(self, diagonal_type):
        register_converter(Dense, diagonal_type, lambda value: value.copy())
        with pytest.raises(ConversionInvariantError):
            cast(Dense(np.eye(2)), diagonal_type)

    def test_from_reference_changing_shape(self, diagonal_type):
        class Truncating(diagonal_type):
            @classmethod
            def from_reference(cls, ref):
                return cls([0.0])

        with pytest.raises(ConversionInvariantError):
            cast(Dense(np.eye(3)), Truncating)

    def test_converter_must_be_callable(self, diagonal_type):
        with pytest.raises(TypeError):
            register_converter(Dense, diagonal_type, None)

    def test_cast_non_data(self):
        with pytest.raises(UnsupportedTypeError):
            cast(np.eye(2), "csr")

    def test_cast_unknown_target(self):
        with pytest.raises(UnsupportedTypeError):
            cast(Dense(np.eye(2)), "unknown")

    def test_conversion_errors_are_runtime_errors(self):
        assert issubclass(ConversionInvariantError, RuntimeError)


# =============================================================================
# Creation Tests
# =============================================================================

class TestCreate:
    """Test building representations from arbitrary input."""

    def test_from_list(self):
        result = create([[1, 2], [3, 4]])
        assert isinstance(result, Dense)
        assert result.shape == (2, 2)

    def test_from_scalar(self):
        assert create(3.0).shape == (1, 1)

    def test_from_scipy(self, scipy_csr_matrix):
        result = create(scipy_csr_matrix)
        assert isinstance(result, CSR)
        assert result.nnz == 6

    def test_adopts_complex_array(self):
        arr = np.eye(2, dtype=np.complex128)
        result = create(arr, copy=False)
        assert result.buffer.ownership == Ownership.ADOPTED
        assert np.shares_memory(result.as_ndarray(), arr)

    def test_copies_when_layout_differs(self):
        arr = np.eye(2)
        result = create(arr, copy=False)
        assert result.buffer.ownership == Ownership.OWNED

    def test_copies_fortran_order(self):
        arr = np.asfortranarray(np.arange(6, dtype=np.complex128).reshape(2, 3))
        result = create(arr, copy=False)
        assert result.buffer.ownership == Ownership.OWNED
        np.testing.assert_array_equal(result.to_array(), arr)

    def test_data_copy(self, small_csr_matrix):
        assert create(small_csr_matrix) is not small_csr_matrix
        assert create(small_csr_matrix, copy=False) is small_csr_matrix

    @pytest.mark.parametrize("value", ["text", {"a": 1}, object()])
    def test_rejects_unknown_input(self, value):
        with pytest.raises(UnsupportedTypeError):
            create(value)
