"""
Tests for the daily reminder batch.

Coverage:
- "Tomorrow" computed in UTC+9 regardless of host timezone
- Only scheduled appointments of reminder-enabled salons
- Failures isolated per appointment and per salon
- Cron bearer authentication
"""
from datetime import date, datetime, time, timezone

import pytest

from salon_booking import models, reminders

# 2025-05-05 13:00 UTC is 22:00 JST; tomorrow in Japan is 2025-05-06
NOW = datetime(2025, 5, 5, 13, 0, tzinfo=timezone.utc)
TOMORROW = date(2025, 5, 6)


def _book(db, salon, customer, start=time(10, 0), day=TOMORROW, status="scheduled"):
    appointment = models.Appointment(
        salon_id=salon.id,
        customer_id=customer.id,
        appointment_date=day,
        start_time=start,
        end_time=None,
        status=status,
    )
    db.add(appointment)
    db.commit()
    return appointment


def _linked_customer(db, salon, last_name, line_user_id):
    customer = models.Customer(salon_id=salon.id, last_name=last_name, first_name="Test")
    db.add(customer)
    db.commit()
    db.add(models.CustomerLineLink(
        salon_id=salon.id, customer_id=customer.id, line_user_id=line_user_id, is_following=True,
    ))
    db.commit()
    return customer


class TestTomorrowInJst:

    def test_evening_utc_is_next_day_in_japan(self):
        assert reminders.tomorrow_in_jst(NOW) == "2025-05-06"

    def test_crosses_date_line(self):
        # 15:30 UTC is already 00:30 the next day in JST
        assert reminders.tomorrow_in_jst(datetime(2025, 5, 5, 15, 30, tzinfo=timezone.utc)) == "2025-05-07"

    def test_naive_is_treated_as_utc(self):
        assert reminders.tomorrow_in_jst(datetime(2025, 12, 31, 15, 0)) == "2026-01-02"

    def test_month_end(self):
        assert reminders.tomorrow_in_jst(datetime(2025, 1, 31, 0, 0, tzinfo=timezone.utc)) == "2025-02-01"


class TestRunDailyReminders:

    @pytest.mark.asyncio
    async def test_sends_for_tomorrow_only(self, db, transport, vault, salon, customer, line_config, line_link):
        _book(db, salon, customer)
        _book(db, salon, customer, start=time(15, 0), status="cancelled")
        _book(db, salon, customer, day=date(2025, 5, 7))

        result = await reminders.run_daily_reminders(db, transport, vault, now=NOW)

        assert result == {"sent": 1, "failed": 0, "date": "2025-05-06"}
        assert len(transport.calls) == 1
        assert "reminder" in transport.calls[0][2][0]["text"]
        log = db.query(models.LineMessageLog).one()
        assert log.message_type == "reminder"

    @pytest.mark.asyncio
    async def test_reminders_disabled(self, db, transport, vault, salon, customer, line_config, line_link):
        line_config.reminder_enabled = False
        db.commit()
        _book(db, salon, customer)

        result = await reminders.run_daily_reminders(db, transport, vault, now=NOW)

        assert result["sent"] == 0
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_unlinked_or_unfollowed_customers_are_not_counted(
        self, db, transport, vault, salon, customer, line_config, line_link
    ):
        line_link.is_following = False
        db.commit()
        _book(db, salon, customer)

        result = await reminders.run_daily_reminders(db, transport, vault, now=NOW)

        assert result == {"sent": 0, "failed": 0, "date": "2025-05-06"}
        assert db.query(models.LineMessageLog).count() == 0

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_the_batch(self, db, transport, vault, salon, line_config):
        first = _linked_customer(db, salon, "Ito", "U-first")
        second = _linked_customer(db, salon, "Ueda", "U-second")
        _book(db, salon, first, start=time(10, 0))
        _book(db, salon, second, start=time(11, 0))
        transport.fail_for.add("U-first")

        result = await reminders.run_daily_reminders(db, transport, vault, now=NOW)

        assert result["sent"] == 1
        assert result["failed"] == 1
        statuses = sorted(log.status for log in db.query(models.LineMessageLog).all())
        assert statuses == ["failed", "sent"]

    @pytest.mark.asyncio
    async def test_broken_salon_does_not_stop_others(self, db, transport, vault, salon, other_salon, line_config):
        # Salon A's token was encrypted with another key, salon B is healthy
        line_config.channel_access_token_encrypted = "garbage"
        db.add(models.SalonLineConfig(
            salon_id=other_salon.id,
            channel_id="222",
            channel_secret_encrypted=vault.encrypt("secret-b"),
            channel_access_token_encrypted=vault.encrypt("token-b"),
            webhook_token="hook-token-salon-2",
            is_active=True,
            reminder_enabled=True,
            confirmation_enabled=True,
        ))
        db.commit()

        a_customer = _linked_customer(db, salon, "Abe", "U-a")
        b_customer = _linked_customer(db, other_salon, "Baba", "U-b")
        _book(db, salon, a_customer)
        _book(db, other_salon, b_customer)

        result = await reminders.run_daily_reminders(db, transport, vault, now=NOW)

        assert result["sent"] == 1
        assert result["failed"] == 1
        assert [call[1] for call in transport.calls] == ["U-b"]


# =============================================================================
# Cron endpoint
# =============================================================================

@pytest.mark.asyncio
async def test_cron_requires_bearer_secret(client, line_config):
    res = await client.post("/api/cron/line-reminders")
    assert res.status_code == 401

    res = await client.post("/api/cron/line-reminders", headers={"Authorization": "Bearer wrong"})
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_cron_runs_batch(client, line_config):
    res = await client.post("/api/cron/line-reminders", headers={"Authorization": "Bearer test-cron-secret"})

    assert res.status_code == 200
    body = res.json()
    assert body["sent"] == 0
    assert body["failed"] == 0
    assert len(body["date"]) == 10
