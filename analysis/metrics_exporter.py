"""
Record export module
"""
import json
import pandas as pd
from typing import Any, Dict, List, Optional, Sequence
from pathlib import Path
import logging

from api.schemas import SampleRecordData
from utils.data_structures import BodyMidline, Landmark, SampleRecord, REQUIRED_JOINTS
from utils.exceptions import ExportError
from config.pipeline_configs import EXPORT_CONFIG

logger = logging.getLogger(__name__)

# Export key for each joint
JOINT_KEYS = {
    "left_shoulder": "leftShoulder",
    "right_shoulder": "rightShoulder",
    "left_hip": "leftHip",
    "right_hip": "rightHip",
    "left_knee": "leftKnee",
    "right_knee": "rightKnee",
}

POINT_FIELDS = ("x", "y", "z")
LANDMARK_FIELDS = ("x", "y", "z", "v")

def _round(value: Optional[float], decimals: int) -> Optional[float]:
    if value is None:
        return None
    return round(float(value), decimals)

class RecordExporter:
    """
    Serializes recorded samples at fixed precision
    """

    def __init__(self, config: Optional[dict] = None):
        self.config = config or EXPORT_CONFIG
        self.coord_decimals = self.config["coordinate_decimals"]
        self.angle_decimals = self.config["angle_decimals"]
        self.time_decimals = self.config["time_decimals"]

    def record_to_dict(self, record: SampleRecord) -> Dict[str, Any]:
        """
        Convert one record to its export dictionary
        """
        c = self.coord_decimals
        data = {
            "subjectId": record.subject_id,
            "sampleIndex": record.sample_index,
            "timeOffsetMs": _round(record.time_offset_ms, self.time_decimals),
            "timestamp": _round(record.timestamp_ms, self.time_decimals),
            "poseTimestamp": _round(record.pose_timestamp_ms, self.time_decimals),
            "valid": record.valid,
            "quality": record.quality,
            "avgAngle": _round(record.avg_angle, self.angle_decimals),
            "leftAngle": _round(record.left_angle, self.angle_decimals),
            "rightAngle": _round(record.right_angle, self.angle_decimals),
            "midline": None,
        }

        if record.midline is not None:
            s_mid = record.midline.shoulder_mid
            h_mid = record.midline.hip_mid
            data["midline"] = {
                "S_mid": {"x": _round(s_mid[0], c), "y": _round(s_mid[1], c), "z": _round(s_mid[2], c)},
                "H_mid": {"x": _round(h_mid[0], c), "y": _round(h_mid[1], c), "z": _round(h_mid[2], c)},
            }

        for joint, key in JOINT_KEYS.items():
            lm = record.landmarks.get(joint) if record.landmarks else None
            data[key] = None if lm is None else {
                "x": _round(lm.x, c),
                "y": _round(lm.y, c),
                "z": _round(lm.z, c),
                "v": _round(lm.visibility, c),
            }

        return data

    def to_dicts(self, records: Sequence[SampleRecord]) -> List[Dict[str, Any]]:
        return [self.record_to_dict(record) for record in records]

    @staticmethod
    def _with_null_leaves(data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Expand null midline/joint objects so every CSV row has the same leaf columns
        """
        data = dict(data)
        if data["midline"] is None:
            data["midline"] = {
                "S_mid": dict.fromkeys(POINT_FIELDS),
                "H_mid": dict.fromkeys(POINT_FIELDS),
            }
        for key in JOINT_KEYS.values():
            if data[key] is None:
                data[key] = dict.fromkeys(LANDMARK_FIELDS)
        return data

    def record_from_data(self, data: SampleRecordData) -> SampleRecord:
        """
        Rebuild a record from its validated export form
        """
        midline = None
        if data.midline is not None:
            s, h = data.midline.S_mid, data.midline.H_mid
            midline = BodyMidline(
                shoulder_mid=(s.x, s.y, s.z),
                hip_mid=(h.x, h.y, h.z),
                axis=(0.0, 0.0),  # axis is not exported
            )

        landmarks = {}
        for joint in REQUIRED_JOINTS:
            lm = getattr(data, JOINT_KEYS[joint])
            if lm is not None:
                landmarks[joint] = Landmark(x=lm.x, y=lm.y, z=lm.z, visibility=lm.v)

        return SampleRecord(
            subject_id=data.subjectId,
            sample_index=data.sampleIndex,
            time_offset_ms=data.timeOffsetMs,
            timestamp_ms=data.timestamp,
            pose_timestamp_ms=data.poseTimestamp,
            valid=data.valid,
            quality=data.quality,
            left_angle=data.leftAngle,
            right_angle=data.rightAngle,
            avg_angle=data.avgAngle,
            midline=midline,
            landmarks=landmarks or None,
        )

    def export_to_json(self, records: Sequence[SampleRecord], output_path: str) -> str:
        """
        Write records as a JSON array

        Args:
            records: recorded samples
            output_path: target file

        Returns:
            Path of the written file
        """
        if not records:
            raise ExportError("No data to export")

        try:
            path = Path(output_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(self.to_dicts(records), f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error(f"JSON export failed: {str(e)}")
            raise ExportError(f"JSON export failed: {str(e)}")

        logger.info(f"Exported {len(records)} records to: {output_path}")
        return str(path)

    def export_to_csv(self, records: Sequence[SampleRecord], output_path: str) -> str:
        """
        Write records as a flat CSV table (one row per sample)
        """
        if not records:
            raise ExportError("No data to export")

        try:
            path = Path(output_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            df = pd.json_normalize([self._with_null_leaves(d) for d in self.to_dicts(records)], sep="_")
            df.to_csv(path, index=False)
        except OSError as e:
            logger.error(f"CSV export failed: {str(e)}")
            raise ExportError(f"CSV export failed: {str(e)}")

        logger.info(f"Exported {len(records)} records to: {output_path}")
        return str(path)

    def load_json(self, input_path: str) -> List[SampleRecord]:
        """
        Read back an exported JSON file
        """
        try:
            with open(input_path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ExportError(f"Cannot read export file {input_path}: {str(e)}")

        if not isinstance(raw, list):
            raise ExportError(f"Export file {input_path} does not contain a record list")

        return [self.record_from_data(SampleRecordData.model_validate(item)) for item in raw]
