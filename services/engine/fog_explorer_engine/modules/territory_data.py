from __future__ import annotations

from typing import Any

# Rings are [longitude, latitude] pairs, closed (first vertex repeated last).
TERRITORY_FEATURES: list[dict[str, Any]] = [
    {
        "name": "대한민국",
        "nameEn": "South Korea",
        "isoCode": "KR",
        "ring": [
            [125.064141, 37.905],
            [125.764, 37.654],
            [126.375, 37.566],
            [126.423, 37.223],
            [126.734, 36.995],
            [126.456, 36.321],
            [126.123, 35.987],
            [126.087, 35.456],
            [125.987, 34.887],
            [126.234, 34.234],
            [126.543, 33.887],
            [127.234, 34.123],
            [128.123, 34.456],
            [128.876, 34.887],
            [129.234, 35.123],
            [129.456, 35.234],
            [129.567, 35.567],
            [129.234, 36.234],
            [129.123, 36.987],
            [128.987, 37.456],
            [128.876, 37.887],
            [128.654, 38.234],
            [128.456, 38.456],
            [128.234, 38.612446],
            [127.987, 38.612446],
            [127.456, 38.567],
            [126.987, 38.456],
            [126.456, 38.234],
            [125.987, 38.123],
            [125.564, 37.987],
            [125.064141, 37.905],
        ],
    },
    {
        "name": "제주특별자치도",
        "nameEn": "Jeju Island",
        "isoCode": "KR-49",
        "ring": [
            [126.161, 33.457],
            [126.287, 33.231],
            [126.567, 33.059665],
            [126.876, 33.123],
            [126.987, 33.287],
            [126.823, 33.487],
            [126.567, 33.567],
            [126.287, 33.523],
            [126.161, 33.457],
        ],
    },
    {
        "name": "독도",
        "nameEn": "Dokdo",
        "isoCode": "KR-DOKDO",
        "ring": [
            [131.872755, 37.244],
            [131.873, 37.245],
            [131.874, 37.244],
            [131.873, 37.243],
            [131.872755, 37.244],
        ],
    },
]

TERRITORY_BOUNDS: dict[str, float] = {
    "north": 38.612446,
    "south": 33.059665,
    "east": 131.872755,
    "west": 125.064141,
}

# (region, south, north, west, east). Boxes overlap; the first match wins, so
# the order is significant.
REGION_BOXES: list[tuple[str, float, float, float, float]] = [
    ("서울특별시", 37.4, 37.7, 126.8, 127.2),
    ("부산광역시", 35.0, 35.4, 129.0, 129.4),
    ("대구광역시", 35.7, 36.0, 128.5, 128.9),
    ("인천광역시", 37.3, 37.6, 126.6, 126.8),
    ("광주광역시", 35.0, 35.3, 126.7, 127.0),
    ("대전광역시", 36.2, 36.5, 127.3, 127.5),
    ("울산광역시", 35.4, 35.7, 129.2, 129.4),
    ("세종특별자치시", 36.4, 36.6, 127.2, 127.4),
    ("경기도", 37.0, 38.2, 126.5, 127.8),
    ("강원도", 37.0, 38.6, 127.8, 129.4),
    ("충청북도", 36.2, 37.2, 127.4, 128.5),
    ("충청남도", 36.0, 37.0, 126.3, 127.7),
    ("전라북도", 35.4, 36.2, 126.4, 127.8),
    ("전라남도", 34.2, 35.8, 126.0, 127.7),
    ("경상북도", 35.7, 37.5, 128.3, 129.6),
    ("경상남도", 34.8, 36.2, 127.8, 129.3),
    ("제주특별자치도", 33.0, 33.6, 126.1, 127.0),
]

REGION_CENTERS: dict[str, dict[str, float]] = {
    "서울특별시": {"lat": 37.5665, "lng": 126.9780, "zoom": 11},
    "부산광역시": {"lat": 35.1796, "lng": 129.0756, "zoom": 11},
    "대구광역시": {"lat": 35.8714, "lng": 128.6014, "zoom": 11},
    "인천광역시": {"lat": 37.4563, "lng": 126.7052, "zoom": 11},
    "광주광역시": {"lat": 35.1595, "lng": 126.8526, "zoom": 11},
    "대전광역시": {"lat": 36.3504, "lng": 127.3845, "zoom": 11},
    "울산광역시": {"lat": 35.5384, "lng": 129.3114, "zoom": 11},
    "세종특별자치시": {"lat": 36.4800, "lng": 127.2890, "zoom": 12},
    "경기도": {"lat": 37.4138, "lng": 127.5183, "zoom": 9},
    "강원도": {"lat": 37.8228, "lng": 128.1555, "zoom": 9},
    "충청북도": {"lat": 36.6356, "lng": 127.4914, "zoom": 9},
    "충청남도": {"lat": 36.5184, "lng": 126.8000, "zoom": 9},
    "전라북도": {"lat": 35.7175, "lng": 127.1530, "zoom": 9},
    "전라남도": {"lat": 34.8679, "lng": 126.9910, "zoom": 9},
    "경상북도": {"lat": 36.4919, "lng": 128.8889, "zoom": 9},
    "경상남도": {"lat": 35.4606, "lng": 128.2132, "zoom": 9},
    "제주특별자치도": {"lat": 33.4996, "lng": 126.5312, "zoom": 10},
}

REGION_EMOJI: dict[str, str] = {
    "서울특별시": "🏙️",
    "부산광역시": "🌊",
    "대구광역시": "🏔️",
    "인천광역시": "✈️",
    "광주광역시": "🎭",
    "대전광역시": "🔬",
    "울산광역시": "🏭",
    "경기도": "🌆",
    "강원도": "⛰️",
    "충청북도": "🏞️",
    "충청남도": "🌾",
    "전라북도": "🍜",
    "전라남도": "🏝️",
    "경상북도": "🏯",
    "경상남도": "🌸",
    "제주특별자치도": "🍊",
}

REGION_METADATA: dict[str, dict[str, Any]] = {
    "서울특별시": {
        "description": "대한민국의 수도",
        "specialties": ["경복궁", "남산타워", "한강", "명동"],
        "color": "#FF5722",
    },
    "부산광역시": {
        "description": "항구도시",
        "specialties": ["해운대", "부산타워", "자갈치시장", "태종대"],
        "color": "#2196F3",
    },
    "제주특별자치도": {
        "description": "아름다운 섬",
        "specialties": ["한라산", "성산일출봉", "협재해수욕장", "한라봉"],
        "color": "#FF9800",
    },
    "경기도": {
        "description": "수도권",
        "specialties": ["수원화성", "에버랜드", "DMZ", "한강"],
        "color": "#4CAF50",
    },
    "강원도": {
        "description": "산과 바다의 고장",
        "specialties": ["설악산", "강릉", "평창", "속초"],
        "color": "#607D8B",
    },
}

DEFAULT_REGION_EMOJI = "📍"
DEFAULT_REGION_COLOR = "#4CAF50"

LANDMARKS: list[dict[str, Any]] = [
    {"name": "경복궁", "lat": 37.5796, "lng": 126.9770, "region": "서울특별시"},
    {"name": "부산타워", "lat": 35.1013, "lng": 129.0320, "region": "부산광역시"},
    {"name": "제주 한라산", "lat": 33.3617, "lng": 126.5292, "region": "제주특별자치도"},
]
