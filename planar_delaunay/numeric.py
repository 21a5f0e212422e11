"""
Numeric helpers shared by every geometric predicate in the package.

The working precision is a floating-point `torch.dtype` chosen per call
(`torch.float32` or `torch.float64`). `almost_equal` derives its tolerance
from `torch.finfo(dtype)`, so the same comparator is used for coordinates,
circumcircle radii and degeneracy checks, in whichever precision the caller
asked for.
"""
import torch

DEFAULT_DTYPE = torch.float64
DEFAULT_ULP = 2 # Units in the last place accepted by `almost_equal`

_PRECISION_NAMES = {
    "float32": torch.float32,
    "single": torch.float32,
    "float64": torch.float64,
    "double": torch.float64,
}


def resolve_dtype(dtype=None) -> torch.dtype:
    """
    Normalizes a precision specifier into a floating-point torch dtype.

    Args:
        dtype (torch.dtype | str | None): `torch.float32`, `torch.float64`, one of
            the names "float32"/"single"/"float64"/"double", or None for `DEFAULT_DTYPE`.

    Returns:
        torch.dtype: The resolved floating-point dtype.

    Raises:
        ValueError: If the specifier is unknown or not a floating-point type.
    """
    if dtype is None:
        return DEFAULT_DTYPE
    if isinstance(dtype, str):
        if dtype not in _PRECISION_NAMES:
            raise ValueError(f"Unknown precision '{dtype}'. Expected one of {sorted(_PRECISION_NAMES)}.")
        return _PRECISION_NAMES[dtype]
    if not isinstance(dtype, torch.dtype) or not dtype.is_floating_point:
        raise ValueError(f"Precision must be a floating-point torch dtype, got {dtype}.")
    return dtype


def almost_equal(x, y, ulp: int = DEFAULT_ULP, dtype=None):
    """
    Floating-point near-equality scaled to the magnitude of the operands.

    `x` and `y` are considered equal when
    `|x - y| <= eps * |x + y| * ulp` or `|x - y| < tiny`, where `eps` and `tiny`
    are the machine epsilon and smallest normal number of `dtype`. The second
    clause keeps the relative test meaningful for values at or near zero.

    Args:
        x, y (float | torch.Tensor): Values to compare. Tensors are broadcast.
        ulp (int): Tolerance in units in the last place. Defaults to `DEFAULT_ULP`.
        dtype (torch.dtype | str | None): Working precision. Defaults to the dtype of
            `x` when it is a floating tensor, otherwise `DEFAULT_DTYPE`.

    Returns:
        bool | torch.Tensor: A Python bool for scalar inputs, a boolean tensor otherwise.
    """
    if dtype is None and isinstance(x, torch.Tensor) and x.dtype.is_floating_point:
        dtype = x.dtype
    dtype = resolve_dtype(dtype)
    finfo = torch.finfo(dtype)

    scalar_inputs = not isinstance(x, torch.Tensor) and not isinstance(y, torch.Tensor)
    x_t = torch.as_tensor(x, dtype=dtype)
    y_t = torch.as_tensor(y, dtype=dtype)

    diff = torch.abs(x_t - y_t)
    result = (diff <= finfo.eps * torch.abs(x_t + y_t) * ulp) | (diff < finfo.tiny)
    if scalar_inputs:
        return bool(result)
    return result


def half(x):
    """Returns `0.5 * x` for floats and tensors alike."""
    return 0.5 * x
