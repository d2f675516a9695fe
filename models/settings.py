"""Evaluator configuration record: per-rule windows and thresholds."""
from dataclasses import dataclass

# Wire keys (as stored in manager_settings) -> dataclass field names.
WINDOW_FIELDS = {
    "faultRateDays": "fault_rate_days",
    "duplicateSerialDays": "duplicate_serial_days",
    "delayedRepairDays": "delayed_repair_days",
    "outOfWarrantyDays": "out_of_warranty_days",
    "returnRateDays": "return_rate_days",
}

COUNT_THRESHOLD_FIELDS = {
    "faultyRequestsPerProduct": "faulty_requests_per_product",
    "repairCenterOverdueCount": "repair_center_overdue_count",
    "duplicateSerialCount": "duplicate_serial_count",
    "outOfWarrantySpikeCount": "out_of_warranty_spike_count",
}

RATIO_THRESHOLD_FIELDS = {
    "repairCenterResolvedRatioMin": "repair_center_resolved_ratio_min",
    # Despite the name this is a fraction in 0..1.
    "returnRatePercent": "return_rate_min",
}


@dataclass(frozen=True)
class EvaluatorConfig:
    fault_rate_days: int
    duplicate_serial_days: int
    delayed_repair_days: int
    out_of_warranty_days: int
    return_rate_days: int
    faulty_requests_per_product: int
    repair_center_overdue_count: int
    repair_center_resolved_ratio_min: float
    duplicate_serial_count: int
    out_of_warranty_spike_count: int
    return_rate_min: float

    @classmethod
    def from_dict(cls, data):
        """Parse the stored record. Raises ValueError on any missing or invalid field."""
        if not isinstance(data, dict):
            raise ValueError("config record must be a mapping")
        windows = data.get("windows")
        thresholds = data.get("thresholds")
        if not isinstance(windows, dict):
            raise ValueError("config record is missing 'windows'")
        if not isinstance(thresholds, dict):
            raise ValueError("config record is missing 'thresholds'")

        values = {}
        for key, attr in WINDOW_FIELDS.items():
            values[attr] = _positive_int(windows, key, "windows")
        for key, attr in COUNT_THRESHOLD_FIELDS.items():
            values[attr] = _positive_int(thresholds, key, "thresholds")
        for key, attr in RATIO_THRESHOLD_FIELDS.items():
            values[attr] = _fraction(thresholds, key)
        return cls(**values)

    def to_dict(self):
        return {
            "windows": {k: getattr(self, a) for k, a in WINDOW_FIELDS.items()},
            "thresholds": {
                **{k: getattr(self, a) for k, a in COUNT_THRESHOLD_FIELDS.items()},
                **{k: getattr(self, a) for k, a in RATIO_THRESHOLD_FIELDS.items()},
            },
        }


def _positive_int(section, key, section_name):
    if key not in section:
        raise ValueError(f"Missing {section_name}.{key}")
    value = section[key]
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != int(value):
        raise ValueError(f"{section_name}.{key} must be an integer, got {value!r}")
    if value <= 0:
        raise ValueError(f"{section_name}.{key} must be positive, got {value}")
    return int(value)


def _fraction(section, key):
    if key not in section:
        raise ValueError(f"Missing thresholds.{key}")
    value = section[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"thresholds.{key} must be a number, got {value!r}")
    if not 0 <= value <= 1:
        raise ValueError(f"thresholds.{key} must be between 0 and 1, got {value}")
    return float(value)
