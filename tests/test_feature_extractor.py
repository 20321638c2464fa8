"""
Tests for Feature Extraction
=============================
"""

from types import SimpleNamespace

import pytest
import numpy as np

from signbridge.core.types import Landmark, Observation
from signbridge.models.feature_extractor import ObservationFeatureExtractor


def create_group(count: int, base: float = 0.1, visibility: float = None):
    """Create a landmark group with distinct, predictable coordinates."""
    return tuple(
        Landmark(x=base + i * 0.01, y=base + i * 0.02, z=-base, visibility=visibility)
        for i in range(count)
    )


class TestObservationFeatureExtractor:
    """Test suite for the observation -> vector mapping."""

    @pytest.fixture
    def extractor(self):
        return ObservationFeatureExtractor()

    @pytest.fixture
    def full_observation(self):
        return Observation(
            pose=create_group(33, 0.1, visibility=0.9),
            left_hand=create_group(21, 0.3),
            right_hand=create_group(21, 0.5),
        )

    def test_default_dimension(self, extractor):
        """33*4 + 21*3 + 21*3 = 258."""
        assert extractor.feature_dim == 258

    def test_dimension_without_visibility(self):
        extractor = ObservationFeatureExtractor(include_pose_visibility=False)
        assert extractor.feature_dim == 225
        vec = extractor.extract(Observation(pose=create_group(33, visibility=0.5)))
        assert vec.shape == (225,)

    def test_length_constant_regardless_of_presence(self, extractor, full_observation):
        """Vector length never depends on which groups were detected."""
        partial = Observation(left_hand=create_group(21))
        assert extractor.extract(full_observation).shape == (258,)
        assert extractor.extract(partial).shape == (258,)
        assert extractor.extract(Observation()).shape == (258,)
        assert extractor.extract(None).shape == (258,)

    def test_dtype_float32(self, extractor, full_observation):
        assert extractor.extract(full_observation).dtype == np.float32

    def test_deterministic(self, extractor, full_observation):
        a = extractor.extract(full_observation)
        b = extractor.extract(full_observation)
        np.testing.assert_array_equal(a, b)

    def test_block_layout(self, extractor, full_observation):
        """Pose block first (with visibility), then left hand, then right hand."""
        vec = extractor.extract(full_observation)
        pose, left, right = full_observation.pose, full_observation.left_hand, full_observation.right_hand

        assert vec[0] == pytest.approx(pose[0].x)
        assert vec[1] == pytest.approx(pose[0].y)
        assert vec[2] == pytest.approx(pose[0].z)
        assert vec[3] == pytest.approx(0.9)
        assert vec[4] == pytest.approx(pose[1].x)

        assert vec[132] == pytest.approx(left[0].x)
        assert vec[135] == pytest.approx(left[1].x)
        assert vec[195] == pytest.approx(right[0].x)
        assert vec[257] == pytest.approx(right[20].z)

    def test_missing_groups_zero_filled(self, extractor):
        """Only the right hand present: pose and left blocks are all zero."""
        vec = extractor.extract(Observation(right_hand=create_group(21, 0.5)))
        assert np.all(vec[:195] == 0.0)
        assert np.any(vec[195:] != 0.0)

    def test_missing_left_hand_does_not_shift_right(self, extractor, full_observation):
        without_left = Observation(pose=full_observation.pose, right_hand=full_observation.right_hand)
        full = extractor.extract(full_observation)
        vec = extractor.extract(without_left)
        np.testing.assert_array_equal(vec[195:], full[195:])
        assert np.all(vec[132:195] == 0.0)

    def test_short_group_padded(self, extractor):
        vec = extractor.extract(Observation(left_hand=create_group(5, 0.3)))
        assert vec[132] == pytest.approx(0.3)
        # Landmarks 5..20 of the left hand block are zero
        assert np.all(vec[132 + 5 * 3:195] == 0.0)

    def test_long_group_truncated(self, extractor):
        vec = extractor.extract(Observation(left_hand=create_group(30, 0.3)))
        assert vec.shape == (258,)
        # Extra points never spill into the right hand block
        assert np.all(vec[195:] == 0.0)

    def test_missing_coordinates_become_zero(self, extractor):
        hand = (Landmark(x=0.4, y=None, z=0.1),) + create_group(20, 0.3)
        vec = extractor.extract(Observation(left_hand=hand))
        assert vec[132] == pytest.approx(0.4)
        assert vec[133] == 0.0
        assert vec[134] == pytest.approx(0.1)

    def test_missing_visibility_becomes_zero(self, extractor):
        vec = extractor.extract(Observation(pose=create_group(33, 0.1, visibility=None)))
        assert vec[3] == 0.0

    def test_extract_batch(self, extractor, full_observation):
        batch = extractor.extract_batch([full_observation, Observation()])
        assert batch.shape == (2, 258)
        assert np.all(batch[1] == 0.0)

    def test_from_config(self):
        extractor = ObservationFeatureExtractor.from_config({"include_pose_visibility": False})
        assert extractor.feature_dim == 225
        assert not extractor.include_pose_visibility


class TestObservation:
    """Test suite for Observation construction."""

    def test_from_dict(self):
        obs = Observation.from_dict({
            "t": 1500,
            "pose": [[0.1, 0.2, 0.3, 0.9]],
            "left_hand": [{"x": 0.5, "y": 0.6, "z": 0.0}],
            "right_hand": None,
        })
        assert obs.timestamp == pytest.approx(1.5)
        assert obs.pose[0].visibility == pytest.approx(0.9)
        assert obs.left_hand[0].y == pytest.approx(0.6)
        assert obs.right_hand is None
        assert not obs.is_empty

    def test_empty(self):
        assert Observation().is_empty
        assert Observation.from_dict({}).is_empty

    def test_empty_groups_are_absent(self):
        obs = Observation.from_dict({"pose": [], "left_hand": [], "right_hand": []})
        assert obs.pose is None
        assert obs.is_empty
        assert Observation(pose=(), left_hand=(), right_hand=()).is_empty

    def test_from_holistic_empty_landmark_lists(self):
        results = SimpleNamespace(
            pose_landmarks=SimpleNamespace(landmark=[]),
            left_hand_landmarks=None,
            right_hand_landmarks=None,
        )
        assert Observation.from_holistic(results) is None

    def test_from_holistic(self):
        point = SimpleNamespace(x=0.1, y=0.2, z=0.3, visibility=0.8)
        results = SimpleNamespace(
            pose_landmarks=SimpleNamespace(landmark=[point] * 33),
            left_hand_landmarks=None,
            right_hand_landmarks=SimpleNamespace(landmark=[point] * 21),
        )
        obs = Observation.from_holistic(results, timestamp=2.0)
        assert len(obs.pose) == 33
        assert obs.left_hand is None
        assert obs.right_hand[0].x == pytest.approx(0.1)
        assert obs.timestamp == 2.0

    def test_from_holistic_nothing_detected(self):
        results = SimpleNamespace(
            pose_landmarks=None, left_hand_landmarks=None, right_hand_landmarks=None,
        )
        assert Observation.from_holistic(results) is None
        assert Observation.from_holistic(None) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
