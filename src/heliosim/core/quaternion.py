"""
===============================================================================
HELIOSIM - Attitude Quaternion
===============================================================================
Unit quaternion used to carry the spacecraft orientation for the attitude
control subsystem.

Convention
----------
Scalar-first, Hamilton product:

    q = [w, x, y, z] = w + x*i + y*j + z*k

A rotation by angle theta about unit axis n is

    q = [cos(theta/2), sin(theta/2) * n]

and a vector is rotated with the sandwich product v' = q * v * q_conj.
The scalar part is kept non-negative so q and -q map to one stored value.
===============================================================================
"""

import numpy as np


class Quaternion:
    """
    Unit quaternion for spacecraft orientation.

    Parameters
    ----------
    w, x, y, z : float
        Scalar part followed by the vector part.
    normalize : bool, optional
        Rescale to unit norm on construction (default True).
    """

    _NORM_TOLERANCE = 1e-10
    _COMPARISON_TOLERANCE = 1e-9

    def __init__(self, w: float, x: float, y: float, z: float,
                 normalize: bool = True) -> None:
        self._q = np.array([w, x, y, z], dtype=np.float64)
        if normalize:
            self._normalize_in_place()

    # =========================================================================
    # COMPONENTS
    # =========================================================================

    @property
    def w(self) -> float:
        return float(self._q[0])

    @property
    def x(self) -> float:
        return float(self._q[1])

    @property
    def y(self) -> float:
        return float(self._q[2])

    @property
    def z(self) -> float:
        return float(self._q[3])

    def _normalize_in_place(self) -> None:
        n = np.linalg.norm(self._q)
        if n < self._NORM_TOLERANCE:
            raise ValueError(
                f"Cannot normalize near-zero quaternion (norm = {n:.2e})."
            )
        self._q /= n
        if self._q[0] < 0.0:
            self._q = -self._q

    # =========================================================================
    # CONSTRUCTORS
    # =========================================================================

    @staticmethod
    def identity() -> 'Quaternion':
        """Zero rotation."""
        return Quaternion(1.0, 0.0, 0.0, 0.0, normalize=False)

    @staticmethod
    def from_axis_angle(axis: np.ndarray, angle: float) -> 'Quaternion':
        """
        Build the rotation of ``angle`` radians about ``axis``.

        Raises
        ------
        ValueError
            If the axis has near-zero length.
        """
        axis = np.asarray(axis, dtype=np.float64)
        axis_norm = np.linalg.norm(axis)
        if axis_norm < 1e-12:
            raise ValueError("Rotation axis has near-zero magnitude.")

        n = axis / axis_norm
        half = 0.5 * angle
        s = np.sin(half)
        return Quaternion(np.cos(half), s * n[0], s * n[1], s * n[2])

    @staticmethod
    def from_two_vectors(v_from: np.ndarray, v_to: np.ndarray) -> 'Quaternion':
        """
        Shortest-arc rotation taking direction ``v_from`` onto ``v_to``.

        Used to turn a body axis (e.g. the +Y thrust axis) toward a pointing
        target such as the velocity vector.

        Parameters
        ----------
        v_from : np.ndarray
            Source direction (normalized internally).
        v_to : np.ndarray
            Target direction (normalized internally).

        Returns
        -------
        Quaternion
            Identity when either vector is degenerate or both coincide; a
            half-turn about an arbitrary perpendicular axis when they are
            opposite.
        """
        a = np.asarray(v_from, dtype=np.float64)
        b = np.asarray(v_to, dtype=np.float64)
        a_norm = np.linalg.norm(a)
        b_norm = np.linalg.norm(b)
        if a_norm < 1e-12 or b_norm < 1e-12:
            return Quaternion.identity()
        a = a / a_norm
        b = b / b_norm

        cross = np.cross(a, b)
        cross_mag = np.linalg.norm(cross)
        dot = float(np.dot(a, b))

        if cross_mag < 1e-12:
            if dot > 0.0:
                return Quaternion.identity()
            helper = np.array([1.0, 0.0, 0.0])
            if abs(a[0]) > 0.9:
                helper = np.array([0.0, 1.0, 0.0])
            return Quaternion.from_axis_angle(np.cross(a, helper), np.pi)

        angle = np.arccos(np.clip(dot, -1.0, 1.0))
        return Quaternion.from_axis_angle(cross / cross_mag, angle)

    # =========================================================================
    # ALGEBRA
    # =========================================================================

    def inverse(self) -> 'Quaternion':
        """Inverse rotation (equal to the conjugate for unit quaternions)."""
        norm_sq = float(np.dot(self._q, self._q))
        return Quaternion(self.w / norm_sq, -self.x / norm_sq,
                          -self.y / norm_sq, -self.z / norm_sq)

    def multiply(self, other: 'Quaternion') -> 'Quaternion':
        """
        Hamilton product ``self * other``: rotate by ``other`` first, then
        by ``self``.
        """
        a1, b1, c1, d1 = self._q
        a2, b2, c2, d2 = other._q
        return Quaternion(
            a1 * a2 - b1 * b2 - c1 * c2 - d1 * d2,
            a1 * b2 + b1 * a2 + c1 * d2 - d1 * c2,
            a1 * c2 - b1 * d2 + c1 * a2 + d1 * b2,
            a1 * d2 + b1 * c2 - c1 * b2 + d1 * a2,
        )

    def __mul__(self, other: 'Quaternion') -> 'Quaternion':
        if not isinstance(other, Quaternion):
            return NotImplemented
        return self.multiply(other)

    # =========================================================================
    # ROTATION
    # =========================================================================

    def rotate_vector(self, v: np.ndarray) -> np.ndarray:
        """Rotate a 3-vector (Rodrigues form of q * v * q_conj)."""
        v = np.asarray(v, dtype=np.float64)
        u = self._q[1:4]
        t = 2.0 * np.cross(u, v)
        return v + self._q[0] * t + np.cross(u, t)

    @property
    def rotation_angle(self) -> float:
        """Rotation angle in [0, pi] radians."""
        return float(2.0 * np.arccos(np.clip(abs(self._q[0]), -1.0, 1.0)))

    @property
    def rotation_axis(self) -> np.ndarray:
        """Unit rotation axis; +Z by convention for the identity."""
        vec = self._q[1:4]
        vec_norm = np.linalg.norm(vec)
        if vec_norm < self._NORM_TOLERANCE:
            return np.array([0.0, 0.0, 1.0])
        return vec / vec_norm

    def angle_to(self, other: 'Quaternion') -> float:
        """Angle (rad) of the rotation separating two orientations."""
        return (other * self.inverse()).rotation_angle

    # =========================================================================
    # UTILITIES
    # =========================================================================

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Quaternion):
            return NotImplemented
        diff = min(np.linalg.norm(self._q - other._q),
                   np.linalg.norm(self._q + other._q))
        return diff < self._COMPARISON_TOLERANCE

    __hash__ = None

    def __repr__(self) -> str:
        return (f"Quaternion(w={self.w:+.6f}, x={self.x:+.6f}, "
                f"y={self.y:+.6f}, z={self.z:+.6f})")
