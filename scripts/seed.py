"""Seed sample data for a local alert receiver."""
from __future__ import annotations

from dotenv import load_dotenv

load_dotenv()

from alert_receiver import db, models
from alert_receiver.config import get_settings
from alert_receiver.services.receivers import generate_receiver


def main() -> None:
    settings = get_settings()
    print(f"Using database: {settings.database_url}")

    db.create_all()
    with db.session_scope() as session:
        alice = models.User(username="alice", email="alice@example.com")
        bob = models.User(username="bob", email="bob@example.com")
        category = models.Category(name="Alerts", slug="alerts")
        group = models.Group(name="sre")
        session.add_all([alice, bob, category, group])
        session.flush()

        session.add_all(
            [
                models.GroupMember(group_id=group.id, user_id=alice.id),
                models.GroupMember(group_id=group.id, user_id=bob.id),
            ]
        )
        session.commit()

        _, url = generate_receiver(
            session,
            category_id=category.id,
            assignee_group_id=group.id,
            created_by="seed",
        )
        print("Seed data inserted.")
        print(f"Alertmanager webhook URL: {url}")


if __name__ == "__main__":
    main()
