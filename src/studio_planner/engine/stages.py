# studio_planner/engine/stages.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class StageDefinition:
    id: int
    title: str
    percentage: float
    items: Tuple[str, ...]


# ---------------------------------------------------------
# STAGE → TASK ITEMS
# Order matters: checked_items[i] refers to items[i].
# ---------------------------------------------------------

STAGE_TASK_MAPPING: Dict[int, List[str]] = {
    1: [
        "Khảo sát hiện trạng",
        "Check quy hoạch (Pháp lý sơ bộ)",
        "Mặt bằng bố trí công năng (Layout 2D)",
        "Chuẩn bị ý tưởng",
    ],
    2: [
        "View chính diện - view xéo - view cổng ngõ",
        "Phối cảnh sân vườn",
        "Phối cảnh sân thượng",
    ],
    3: [
        "Mặt bằng-đứng-cắt sơ bộ & hầm tự hoại & móng",
        "Hỗ trợ nộp hồ sơ",
    ],
    4: [
        "Phòng khách + Bếp + Phòng ngủ Master",
        "Các Phòng ngủ còn lại + Phòng thờ + Wc + không gian phụ",
    ],
    5: [
        "Mặt bằng định vị Móng & Chi tiết Móng",
        "Mặt bằng định vị Cột & Chi tiết Cột",
        "Mặt bằng Dầm - Sàn các tầng",
        "Chi tiết kết cấu phụ",
    ],
    6: [
        "Sơ đồ nguyên lý",
        "Mặt bằng Ổ cắm",
        "Hệ thống Điện nhẹ (ELV)",
        "Mặt bằng Cấp - Thoát nước",
        "Mặt bằng Điều hòa không khí",
        "Mặt bằng Chiếu sáng",
    ],
    7: [
        "Kiểm soát mặt bằng và đồng bộ 3D phối cảnh",
        "Chi tiết Lát sàn",
        "Triển khai mặt đứng/mặt cắt thi công",
        "Chi tiết Thang bộ",
        "Chi tiết Vệ sinh (WC)",
        "Chi tiết Cửa (Thống kê cửa)",
        "Chi tiết Cổng/Tường rào",
        "Chi tiết Mái che/Giếng trời & Sê-nô",
        "Chi tiết sân vườn",
        "Chi tiết tường trang trí",
        "Chi tiết Trần & Đèn",
        "Triển khai nội thất kích thước",
        "Triển khai nội thất chi tiết",
    ],
    8: [
        "Kiểm tra rà soát thông tin",
        "Kiểm tra đồng bộ phối cảnh và hồ sơ",
    ],
    9: [
        "Trình mẫu & Duyệt vật liệu thực tế",
        "Ký chốt hồ sơ Bàn giao",
        "Lưu hệ thống file và khóa hồ sơ",
    ],
}

# ---------------------------------------------------------
# STAGES (weights sum to 100)
# ---------------------------------------------------------

_STAGE_HEADERS = [
    (1, "Stage 1: Preparation & concept sign-off", 11),
    (2, "Stage 2: Facade 3D", 20.5),
    (3, "Stage 3: Building permit dossier", 1.5),
    (4, "Stage 4: Interior 3D", 31.5),
    (5, "Stage 5: Structure", 9),
    (6, "Stage 6: Electrical & plumbing (M.E.P)", 7.5),
    (7, "Stage 7: Architecture details", 14),
    (8, "Stage 8: Construction dossier control", 3),
    (9, "Stage 9: Sign-off & material selection", 2.5),
]

STAGES: Tuple[StageDefinition, ...] = tuple(
    StageDefinition(id=sid, title=title, percentage=pct, items=tuple(STAGE_TASK_MAPPING[sid]))
    for sid, title, pct in _STAGE_HEADERS
)

STAGE_IDS: Tuple[int, ...] = tuple(s.id for s in STAGES)

_BY_ID = {s.id: s for s in STAGES}


def get_stage(stage_id) -> Optional[StageDefinition]:
    """Stage definition by id; tolerates string ids coming from JSON."""
    try:
        return _BY_ID.get(int(stage_id))
    except (TypeError, ValueError):
        return None


def task_name(stage_id, item_index: int) -> Optional[str]:
    stage = get_stage(stage_id)
    if stage is None or item_index < 0 or item_index >= len(stage.items):
        return None
    return stage.items[item_index]


def task_index(stage_id, name: str) -> int:
    """Index of the first item with this name in the stage, -1 when absent."""
    stage = get_stage(stage_id)
    if stage is None or name not in stage.items:
        return -1
    return stage.items.index(name)


def short_title(stage: StageDefinition) -> str:
    return stage.title.split(":", 1)[1].strip() if ":" in stage.title else stage.title
