from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from target_pipeline.strategies import detect_aruco as detect_mod
from target_pipeline.strategies.detect_aruco import ArucoDetect, get_dict, normalize_dict_name
from target_pipeline.tp_types import Frame, Header

from conftest import marker_scene


def _frame(image):
    return Frame(Header(1, 0.0), image)


def test_dict_names_are_normalized():
    assert normalize_dict_name("DICT_4X4_250") == "4x4_250"
    assert normalize_dict_name(" 6x6_50 ") == "6x6_50"
    assert get_dict("DICT_4X4_250") is not None


def test_unknown_dict_rejected():
    with pytest.raises(ValueError):
        ArucoDetect("3x3_9")


def test_detects_rendered_marker_with_corner_order():
    image = marker_scene([(17, 200, 150, 120)])
    markers = ArucoDetect("4x4_250").detect(_frame(image))

    assert len(markers) == 1
    m = markers[0]
    assert m.marker_id == 17
    assert m.corners.shape == (4, 2)
    assert m.corners.dtype == np.float32
    expected = np.array([[200, 150], [320, 150], [320, 270], [200, 270]], dtype=np.float32)
    np.testing.assert_allclose(m.corners, expected, atol=2.0)


def test_detects_several_markers():
    image = marker_scene([(1, 50, 50, 100), (2, 400, 250, 100)])
    markers = ArucoDetect().detect(_frame(image))
    assert sorted(m.marker_id for m in markers) == [1, 2]


def test_empty_frame_is_not_an_error(blank_image):
    assert ArucoDetect().detect(_frame(blank_image)) == []


def test_detect_uses_new_detector_api():
    detector = ArucoDetect("4x4_250")
    fake_detector = MagicMock()
    fake_detector.detectMarkers.return_value = (
        [np.zeros((1, 4, 2), dtype=np.float32)],
        np.array([[42]], dtype=np.int32),
        [],
    )
    detector._detector = fake_detector
    frame = _frame(np.zeros((2, 2, 3), dtype=np.uint8))

    results = detector.detect(frame)
    assert len(results) == 1
    assert results[0].marker_id == 42
    assert results[0].corners.shape == (4, 2)
    fake_detector.detectMarkers.assert_called_once_with(frame.image)


def test_detect_falls_back_to_module_function():
    with patch.object(detect_mod.cv2.aruco, "detectMarkers", create=True) as mock_detect:
        mock_detect.return_value = (
            [np.zeros((1, 4, 2), dtype=np.float32)],
            np.array([[7]], dtype=np.int32),
            [],
        )
        detector = ArucoDetect("4x4_250")
        detector._detector = None
        results = detector.detect(_frame(np.zeros((2, 2, 3), dtype=np.uint8)))

    assert [r.marker_id for r in results] == [7]
    mock_detect.assert_called_once()
