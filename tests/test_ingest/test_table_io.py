import numpy as np
import pytest
from pandas._testing import assert_frame_equal

from imureg.heading_correction import HeadingCorrection
from imureg.ingest import load_orientation_table, save_orientation_table, to_orientation_table
from imureg.utils.exceptions import ValidationError


def test_roundtrip(orientation_data, tmp_path):
    path = tmp_path / "orientations.sto"

    save_orientation_table(orientation_data, path)
    loaded = load_orientation_table(path)

    assert_frame_equal(loaded, orientation_data)
    assert loaded.attrs == {"heading_corrected": False}


def test_roundtrip_keeps_heading_metadata(orientation_data, tmp_path):
    path = tmp_path / "corrected.sto"
    corrected = HeadingCorrection(base_sensor="femur_r_imu", heading_axis="x").correct(orientation_data).corrected_data_

    save_orientation_table(corrected, path)
    loaded = load_orientation_table(path)

    assert loaded.attrs == {"heading_corrected": True, "base_sensor": "femur_r_imu", "heading_axis": "x"}
    assert list(loaded.columns.unique(level=0)) == ["pelvis_imu", "femur_r_imu", "femur_l_imu"]


def test_file_layout(orientation_data, tmp_path):
    path = tmp_path / "orientations.sto"

    save_orientation_table(orientation_data, path)
    lines = path.read_text().splitlines()

    assert lines[0] == "nColumns=13"
    assert lines[1] == "heading_corrected=False"
    assert lines[2] == "endheader"
    assert lines[3].startswith("time,pelvis_imu_q_w,pelvis_imu_q_x,pelvis_imu_q_y,pelvis_imu_q_z,femur_r_imu_q_w")


def test_missing_end_of_header(tmp_path):
    path = tmp_path / "broken.sto"
    path.write_text("time,s1_q_w,s1_q_x,s1_q_y,s1_q_z\n0.0,1,0,0,0\n")

    with pytest.raises(ValidationError):
        load_orientation_table(path)


@pytest.mark.parametrize(
    "content",
    (
        "endheader\ntime,s1_q_w,s1_q_x,s1_q_y\n0.0,1,0,0\n",
        "endheader\ntime,s1_w,s1_x,s1_y,s1_z\n0.0,1,0,0,0\n",
        "heading_corrected=maybe\nendheader\ntime,s1_q_w,s1_q_x,s1_q_y,s1_q_z\n0.0,1,0,0,0\n",
        "no header line\nendheader\ntime,s1_q_w,s1_q_x,s1_q_y,s1_q_z\n0.0,1,0,0,0\n",
    ),
)
def test_invalid_files(tmp_path, content):
    path = tmp_path / "invalid.sto"
    path.write_text(content)

    with pytest.raises(ValidationError):
        load_orientation_table(path)


def test_invalid_header_value(orientation_data, tmp_path):
    orientation_data.attrs["note"] = "a=b"

    with pytest.raises(ValueError):
        save_orientation_table(orientation_data, tmp_path / "orientations.sto")


@pytest.mark.parametrize(
    "attrs",
    (
        {"a=b": "value"},
        {"line\nbreak": "value"},
        {1: "value"},
        {"n_samples": 5},
        {"heading_corrected": "yes"},
    ),
)
def test_invalid_header_entries(orientation_data, tmp_path, attrs):
    orientation_data.attrs.update(attrs)
    path = tmp_path / "orientations.sto"

    with pytest.raises(ValueError):
        save_orientation_table(orientation_data, path)
    assert not path.exists()


def test_non_string_sensor_names(tmp_path):
    data = to_orientation_table({1: np.array([[1.0, 0, 0, 0]] * 3)})
    path = tmp_path / "orientations.sto"

    with pytest.raises(ValueError):
        save_orientation_table(data, path)
    assert not path.exists()


def test_string_attrs_roundtrip(orientation_data, tmp_path):
    orientation_data.attrs["subject"] = "subject01"
    path = tmp_path / "orientations.sto"

    save_orientation_table(orientation_data, path)

    assert load_orientation_table(path).attrs == {"heading_corrected": False, "subject": "subject01"}
