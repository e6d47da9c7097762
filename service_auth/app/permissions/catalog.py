"""
Default permission catalog.

Permissions are global rows keyed by (category, action); school admins
grant them to their staff.
"""

from typing import Dict, List, Tuple

from shared.contracts import Permission


DEFAULT_PERMISSIONS: Dict[str, List[Tuple[str, str]]] = {
    "students": [
        ("view", "View students"),
        ("create", "Create students"),
        ("edit", "Edit students"),
        ("delete", "Delete students"),
        ("import", "Import students"),
        ("export", "Export students"),
    ],
    "teachers": [
        ("view", "View teachers"),
        ("create", "Create teachers"),
        ("edit", "Edit teachers"),
        ("delete", "Delete teachers"),
        ("statistics", "View teacher statistics"),
    ],
    "staff": [
        ("view", "View staff"),
        ("create", "Create staff"),
        ("edit", "Edit staff"),
        ("delete", "Delete staff"),
    ],
    "modules": [
        ("view", "View modules and subjects"),
        ("create", "Create modules and subjects"),
        ("edit", "Edit modules and subjects"),
        ("delete", "Delete modules and subjects"),
    ],
    "filieres": [
        ("view", "View programs"),
        ("create", "Create programs"),
        ("edit", "Edit programs"),
        ("delete", "Delete programs"),
    ],
    "timetable": [
        ("view", "View timetables"),
        ("create", "Create timetables"),
        ("edit", "Edit timetables"),
        ("delete", "Delete timetables"),
        ("export", "Export timetables as PDF"),
    ],
    "finance": [
        ("view", "View finances"),
        ("create", "Create fees and payments"),
        ("edit", "Edit fees and payments"),
        ("delete", "Delete fees and payments"),
        ("scholarships", "Manage scholarships"),
        ("reports", "View financial reports"),
    ],
    "grades": [
        ("view", "View grades"),
        ("create", "Create evaluations"),
        ("edit", "Edit grades"),
        ("delete", "Delete grades"),
        ("config", "Configure grading scales"),
    ],
    "attendance": [
        ("view", "View attendance"),
        ("create", "Record attendance"),
        ("edit", "Edit attendance"),
        ("delete", "Delete attendance"),
    ],
    "homework": [
        ("view", "View homework"),
        ("create", "Create homework"),
        ("edit", "Edit homework"),
        ("delete", "Delete homework"),
        ("grade", "Grade homework"),
    ],
    "reporting": [
        ("view", "View report cards"),
        ("create", "Generate report cards"),
        ("edit", "Edit report configuration"),
        ("delete", "Delete reports"),
    ],
    "communication": [
        ("view", "View messages"),
        ("create", "Send messages"),
        ("announcements", "Publish announcements"),
        ("delete", "Delete messages"),
    ],
    "calendar": [
        ("view", "View calendar"),
        ("create", "Create events"),
        ("edit", "Edit events"),
        ("delete", "Delete events"),
    ],
    "polls": [
        ("view", "View polls"),
        ("create", "Create polls"),
        ("edit", "Edit polls"),
        ("delete", "Delete polls"),
        ("vote", "Vote in polls"),
    ],
    "settings": [
        ("view", "View settings"),
        ("edit", "Edit settings"),
        ("permissions", "Manage permissions"),
    ],
    "parents": [
        ("view", "View parents"),
        ("create", "Create parents"),
        ("edit", "Edit parents"),
        ("delete", "Delete parents"),
    ],
}


def default_permissions() -> List[Permission]:
    return [
        Permission(
            id=f"perm-{category}-{action}",
            category=category,
            name=action,
            description=description,
        )
        for category, actions in DEFAULT_PERMISSIONS.items()
        for action, description in actions
    ]
