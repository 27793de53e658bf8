import csv

import numpy as np


class CsvWriter:
    HEADER = [
        "stamp", "seq", "marker_id",
        "marker_size", "altitude",
        "rvec_x", "rvec_y", "rvec_z",
        "tvec_x", "tvec_y", "tvec_z",
        "status",
    ]

    def __init__(self, csv_path: str):
        self.csv_path = csv_path
        self._opened = False
        self._fh = None
        self._w = None

    def open(self):
        self._fh = open(self.csv_path, "w", newline="")
        self._w = csv.writer(self._fh)
        self._w.writerow(self.HEADER)
        self._opened = True

    @staticmethod
    def _vec3(vec):
        if vec is None:
            return [float("nan")] * 3
        a = np.array(vec, dtype=np.float64).reshape(-1).tolist()
        if len(a) < 3:
            a += [float("nan")] * (3 - len(a))
        return a[:3]

    @classmethod
    def row(cls, stamp, seq, marker_id, marker_size, altitude, rvec, tvec, status):
        size = float("nan") if marker_size is None else marker_size
        return [
            f"{stamp:.6f}",
            seq, marker_id,
            f"{size:.6f}", f"{altitude:.3f}",
            *cls._vec3(rvec), *cls._vec3(tvec),
            status,
        ]

    def append(self, stamp, seq, marker_id, marker_size, altitude, rvec, tvec, status):
        self._w.writerow(self.row(stamp, seq, marker_id, marker_size, altitude, rvec, tvec, status))
        self._fh.flush()

    def close(self):
        if self._opened and self._fh:
            self._fh.close()
            self._opened = False
            self._fh = None
            self._w = None
