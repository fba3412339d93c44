# studio_planner/engine/team.py

from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from studio_planner.engine.models import ATTITUDE_FIELDS, AppLink, AttitudeScores, Employee, parse_number

ATTITUDE_MIN = 1
ATTITUDE_MAX = 10
NEW_EMPLOYEE_TARGET = 300.0

EMPLOYEE_ROLES = [
    "CEO",
    "GIÁM ĐỐC",
    "PHÓ GIÁM ĐỐC",
    "TRƯỞNG PHÒNG",
    "PHÓ PHÒNG",
    "KIẾN TRÚC SƯ",
    "TK NỘI THẤT",
    "THIẾT KẾ",
    "KỸ SƯ",
    "KẾT CẤU",
    "HỌA VIÊN",
    "TK TRIỂN KHAI",
]

DEFAULT_ROLE = "KIẾN TRÚC SƯ"

AVATAR_SEEDS: Dict[str, str] = {
    "THỦY": "Sophie",
    "HUY": "Midnight",
    "SƠN": "Felix",
    "HOÀNG": "Ryan",
    "HIẾU": "Mason",
    "VINH": "Caleb",
    "DÂN": "Nolan",
    "VIỆT": "Chase",
}

AVATAR_URL = "https://api.dicebear.com/7.x/adventurer/svg?seed={seed}&backgroundColor=b6e3f4"


def avatar_url(name: str) -> str:
    clean = (name or "").strip().upper()
    return AVATAR_URL.format(seed=AVATAR_SEEDS.get(clean, clean))


# ---------------------------------------------------------
# Seed roster
# ---------------------------------------------------------

# (name, role, target, conduct, activities, client_feedback, teamwork, culture)
_SEED = [
    ("HUY", "TRƯỞNG PHÒNG", 24000, 9, 8, 9, 9, 9),
    ("THỦY", "TK NỘI THẤT", 19500, 8, 9, 9, 8, 9),
    ("VIỆT", "TK TRIỂN KHAI", 16500, 8, 8, 8, 8, 8),
    ("SƠN", "TRƯỞNG PHÒNG", 12000, 9, 8, 9, 9, 9),
    ("DÂN", "HỌA VIÊN", 12000, 8, 8, 8, 8, 8),
    ("HIẾU", "KẾT CẤU", 11250, 8, 8, 8, 8, 8),
    ("HOÀNG", "KIẾN TRÚC SƯ", 10500, 8, 7, 8, 8, 8),
    ("VINH", "KIẾN TRÚC SƯ", 9000, 8, 8, 8, 8, 8),
]


def initial_employees() -> List[Employee]:
    out = []
    for i, (name, role, target, *scores) in enumerate(_SEED, start=1):
        out.append(
            Employee(
                id=f"EMP-{i:03d}",
                name=name,
                role=role,
                avatar_url=avatar_url(name),
                target_kpi=float(target),
                attitude=AttitudeScores(**dict(zip(ATTITUDE_FIELDS, scores))),
            )
        )
    return out


# ---------------------------------------------------------
# Roster edits (return new lists)
# ---------------------------------------------------------

def new_employee(name: str, role: str = DEFAULT_ROLE, target_kpi=NEW_EMPLOYEE_TARGET) -> Employee:
    name = (name or "").strip()
    if not name or not (role or "").strip():
        raise ValueError("Employee name and role are required")
    return Employee(
        id=f"EMP-{uuid.uuid4().hex[:10]}",
        name=name,
        role=role.strip(),
        avatar_url=avatar_url(name),
        target_kpi=parse_number(target_kpi),
        attitude=AttitudeScores(),
    )


def save_employee(team: Iterable[Employee], employee: Employee) -> List[Employee]:
    """Replace the member with the same id, or append a new one."""
    if not employee.name.strip() or not employee.role.strip():
        raise ValueError("Employee name and role are required")
    team = list(team)
    for i, member in enumerate(team):
        if member.id == employee.id:
            team[i] = employee
            return team
    return team + [employee]


def remove_employee(team: Iterable[Employee], employee_id: str) -> List[Employee]:
    return [e for e in team if e.id != employee_id]


def clamp_attitude(value) -> float:
    return float(min(ATTITUDE_MAX, max(ATTITUDE_MIN, parse_number(value))))


def set_attitude(employee: Employee, field_name: str, value) -> Employee:
    if field_name not in ATTITUDE_FIELDS:
        raise ValueError(f"Unknown attitude field: {field_name}")
    return replace(employee, attitude=replace(employee.attitude, **{field_name: clamp_attitude(value)}))


def find_employee(team: Iterable[Employee], name: str) -> Optional[Employee]:
    return next((e for e in team if e.name == name), None)


# ---------------------------------------------------------
# App links
# ---------------------------------------------------------

_UNSPLASH = "https://images.unsplash.com/{photo}?q=80&w=800&auto=format&fit=crop"

DEFAULT_APP_LINKS = (
    AppLink(
        id="app-1",
        name="Thiết Kế Ngoại thất (Tạo siêu nhanh)",
        description="Công cụ tạo hình ảnh nhanh, thân thiện với điện thoại.",
        default_url="https://aistudio.google.com/app/apps/drive/1-wJQICz7Ro8Kx-EG0PGeTwffAWu9VUMZ?showPreview=true&showAssistant=true&fullscreenApplet=true",
        image_url=_UNSPLASH.format(photo="photo-1517581177697-a06a595e3be2"),
        is_favorite=True,
    ),
    AppLink(
        id="app-2",
        name="Thiết kế Ngoại thất (Bản cao cấp)",
        description="Tạo phối cảnh chuyên nghiệp, dành cho nội bộ Tân Phát.",
        default_url="https://aistudio.google.com/apps/drive/1DhViEaAYwL7-PCMb9ziNxghMMby-o0f3?showPreview=true&showAssistant=true&fullscreenApplet=true",
        image_url=_UNSPLASH.format(photo="photo-1600607687939-ce8a6c25118c"),
        is_favorite=True,
    ),
    AppLink(
        id="app-3",
        name="Thiết kế Nội thất (bản cao cấp)",
        description="Tạo và điều chỉnh ảnh nội thất.",
        image_url=_UNSPLASH.format(photo="photo-1616486338812-3dadae4b4ace"),
    ),
    AppLink(
        id="app-4",
        name="Thiết kế poster chuyên nghiệp",
        description="Tạo ấn phẩm truyền thông, quảng cáo.",
        image_url=_UNSPLASH.format(photo="photo-1558655146-d09347e92766"),
    ),
    AppLink(
        id="app-5",
        name="Ứng dụng tạo video chuyên nghiệp",
        description="Công cụ dựng video, motion graphics.",
        image_url=_UNSPLASH.format(photo="photo-1536240478700-b869070f9279"),
    ),
    AppLink(
        id="app-6",
        name="Triển khai hồ sơ cơ sở",
        description="Triển khai bản vẽ từ hình ảnh (Ngoại thất, Nội thất).",
        image_url=_UNSPLASH.format(photo="photo-1541888946425-d81bb19240f5"),
    ),
    AppLink(
        id="app-7",
        name="Tạo phối cảnh tổng thể từ mặt bằng",
        description="Chuyển bản vẽ 2D thành phối cảnh 3D tổng thể.",
        image_url=_UNSPLASH.format(photo="photo-1580587771525-78b9dba3b91d"),
    ),
)


def default_app_links() -> List[AppLink]:
    return [replace(link) for link in DEFAULT_APP_LINKS]


def toggle_favorite(links: Iterable[AppLink], link_id: str) -> List[AppLink]:
    return [replace(l, is_favorite=not l.is_favorite) if l.id == link_id else l for l in links]


def update_link(links: Iterable[AppLink], link_id: str, **changes) -> List[AppLink]:
    return [replace(l, **changes) if l.id == link_id else l for l in links]


def reset_link(links: Iterable[AppLink], link_id: str) -> List[AppLink]:
    """Restore name, description and image from the defaults; URL and favorite are kept."""
    default = next((d for d in DEFAULT_APP_LINKS if d.id == link_id), None)
    if default is None:
        return list(links)
    return update_link(
        links, link_id, name=default.name, description=default.description, image_url=default.image_url
    )
