import cv2
from ..pp_types import Frame, Detection

def get_dict(name: str):
    """
    ArUco dictionary resolver. Accepts "4x4_50" or "DICT_4X4_50".
    Falls back to 4x4_50 if name not recognized.
    """
    key = (name or "").strip().lower()
    if key.startswith("dict_"):
        key = key[5:]
    table = {
        "4x4_50":  cv2.aruco.DICT_4X4_50,
        "4x4_100": cv2.aruco.DICT_4X4_100,
        "5x5_50":  cv2.aruco.DICT_5X5_50,
        "5x5_100": cv2.aruco.DICT_5X5_100,
        "6x6_50":  cv2.aruco.DICT_6X6_50,
        "6x6_100": cv2.aruco.DICT_6X6_100,
        "7x7_50":  cv2.aruco.DICT_7X7_50,
        "7x7_100": cv2.aruco.DICT_7X7_100,
    }
    code = table.get(key, cv2.aruco.DICT_4X4_50)
    return cv2.aruco.getPredefinedDictionary(code)

class ArucoDetect:
    """
    Strategy: detect ArUco markers in a frame.
    Returns a list[Detection] ordered as the detector reports them; the
    pointer only uses the first one.
    """
    def __init__(self, dict_name: str = "4x4_50"):
        self.dictionary = get_dict(dict_name)
        self.params = cv2.aruco.DetectorParameters()
        self._detector = cv2.aruco.ArucoDetector(self.dictionary, self.params)

    def detect(self, f: Frame) -> list[Detection]:
        corners, ids, _rej = self._detector.detectMarkers(f.image)

        dets: list[Detection] = []
        if ids is not None and len(ids) > 0:
            for i, mid in enumerate(ids.flatten()):
                dets.append(Detection(int(mid), corners[i]))
        return dets
