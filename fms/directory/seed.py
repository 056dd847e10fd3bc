# fms/directory/seed.py
from sqlalchemy.orm import Session

from fms.directory.models import Category, Priority, SkillGroup

SKILL_GROUPS = (
    ("technical", "Technical"),
    ("plumbing", "Plumbing"),
    ("soft_services", "Soft Services"),
    ("vendor", "Vendor"),
)

# code, name, skill group code, priority, sla hours
CATEGORIES = (
    ("ac_breakdown", "AC Breakdown", "technical", Priority.HIGH, 4),
    ("power_outage", "Power Outage", "technical", Priority.CRITICAL, 2),
    ("electrical_fault", "Electrical Fault", "technical", Priority.HIGH, 4),
    ("lighting", "Lighting", "technical", Priority.MEDIUM, 24),
    ("water_leakage", "Water Leakage", "plumbing", Priority.HIGH, 4),
    ("plumbing_blockage", "Plumbing Blockage", "plumbing", Priority.MEDIUM, 8),
    ("lift_issue", "Lift Issue", "vendor", Priority.CRITICAL, 2),
    ("fire_safety", "Fire Safety", "vendor", Priority.CRITICAL, 2),
    ("cleaning", "Cleaning", "soft_services", Priority.LOW, 24),
    ("pest_control", "Pest Control", "soft_services", Priority.MEDIUM, 48),
    ("washroom_supplies", "Washroom Supplies", "soft_services", Priority.LOW, 8),
    ("network_issue", "Network Issue", "technical", Priority.MEDIUM, 8),
)


def seed_reference_data(db: Session) -> None:
    """Insert missing skill groups and categories. Safe to run repeatedly."""
    groups = {g.code: g for g in db.query(SkillGroup).all()}
    for code, name in SKILL_GROUPS:
        if code not in groups:
            groups[code] = SkillGroup(code=code, name=name)
            db.add(groups[code])
    db.flush()

    existing = {c.code for c in db.query(Category.code).all()}
    for code, name, group_code, priority, sla_hours in CATEGORIES:
        if code in existing:
            continue
        db.add(Category(
            code=code,
            name=name,
            skill_group_id=groups[group_code].id,
            priority=priority.value,
            sla_hours=sla_hours,
        ))
    db.commit()
