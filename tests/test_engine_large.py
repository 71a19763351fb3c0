import sys
import os
import random
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models import Transaction, TransactionType
from payments_engine import PaymentsEngine


def by_client(accounts):
    return {account.client_id: account for account in accounts}


def random_stream(seed, num_clients=20, num_events=2000):
    """Deterministic mixed stream, including plenty of events that should be skipped."""
    rng = random.Random(seed)
    events = []
    funding_ids = []
    for tx_id in range(1, num_events + 1):
        client_id = rng.randint(1, num_clients)
        roll = rng.random()
        if roll < 0.4 or not funding_ids:
            amount = Decimal(rng.randint(1, 100000)).scaleb(-4)
            events.append(Transaction(TransactionType.DEPOSIT, client_id, tx_id, amount))
            funding_ids.append((client_id, tx_id))
        elif roll < 0.6:
            amount = Decimal(rng.randint(1, 100000)).scaleb(-4)
            events.append(Transaction(TransactionType.WITHDRAWAL, client_id, tx_id, amount))
            funding_ids.append((client_id, tx_id))
        else:
            owner, ref = rng.choice(funding_ids)
            if rng.random() < 0.1:
                owner = client_id
            kind = rng.choice([TransactionType.DISPUTE, TransactionType.DISPUTE, TransactionType.RESOLVE, TransactionType.CHARGEBACK])
            events.append(Transaction(kind, owner, ref))
    return events


class TestPaymentsEngineLargeScale:
    def test_1000_accounts_6000_transactions(self, tmp_path):
        """Test with 1000 accounts and 6000 transactions."""
        num_clients = 1000
        rows = ["type, client, tx, amount"]
        tx_id = 1

        # Each client gets: 3 deposits (100, 200, 300) and 2 withdrawals (50, 100)
        for client_id in range(1, num_clients + 1):
            rows.append(f"deposit, {client_id}, {tx_id}, 100")
            tx_id += 1
            rows.append(f"deposit, {client_id}, {tx_id}, 200")
            tx_id += 1
            rows.append(f"deposit, {client_id}, {tx_id}, 300")
            tx_id += 1
            rows.append(f"withdrawal, {client_id}, {tx_id}, 50")
            tx_id += 1
            rows.append(f"withdrawal, {client_id}, {tx_id}, 100")
            tx_id += 1

        # Extra deposit for each client
        for client_id in range(1, num_clients + 1):
            rows.append(f"deposit, {client_id}, {tx_id}, 50")
            tx_id += 1

        expected_balance = Decimal("500")  # 450 + 50

        csv_file = tmp_path / "large_test.csv"
        csv_file.write_text('\n'.join(rows))

        engine = PaymentsEngine()
        accounts = by_client(engine.process_file(str(csv_file)))

        assert len(accounts) == num_clients
        assert engine.stats.applied == 6000

        for client_id in range(1, num_clients + 1):
            assert accounts[client_id].available == expected_balance, \
                f"Client {client_id}: expected {expected_balance}, got {accounts[client_id].available}"
            assert accounts[client_id].held == Decimal("0")
            assert accounts[client_id].locked is False

    def test_with_disputes_resolves_chargebacks(self, tmp_path):
        """Test with disputes, resolves, and chargebacks across 50 accounts."""
        rows = ["type, client, tx, amount"]

        # Client 1-10: Normal deposits only
        for client_id in range(1, 11):
            rows.append(f"deposit, {client_id}, {client_id * 100 + 1}, 100")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 2}, 150")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 3}, 250")

        # Client 11-20: Deposit -> Dispute -> Resolve
        for client_id in range(11, 21):
            rows.append(f"deposit, {client_id}, {client_id * 100 + 1}, 100")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 2}, 150")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 3}, 250")
        for client_id in range(11, 21):
            rows.append(f"dispute, {client_id}, {client_id * 100 + 1},")
        for client_id in range(11, 21):
            rows.append(f"resolve, {client_id}, {client_id * 100 + 1},")

        # Client 21-30: Deposit -> Dispute -> Chargeback
        for client_id in range(21, 31):
            rows.append(f"deposit, {client_id}, {client_id * 100 + 1}, 100")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 2}, 150")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 3}, 250")
        for client_id in range(21, 31):
            rows.append(f"dispute, {client_id}, {client_id * 100 + 1},")
        for client_id in range(21, 31):
            rows.append(f"chargeback, {client_id}, {client_id * 100 + 1},")

        # Client 31-40: Deposit -> Withdrawal -> Dispute (on deposit)
        for client_id in range(31, 41):
            rows.append(f"deposit, {client_id}, {client_id * 100 + 1}, 150")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 2}, 250")
            rows.append(f"withdrawal, {client_id}, {client_id * 100 + 3}, 100")
        for client_id in range(31, 41):
            rows.append(f"dispute, {client_id}, {client_id * 100 + 1},")

        # Client 41-50: Multiple deposits, dispute middle one, resolve
        for client_id in range(41, 51):
            rows.append(f"deposit, {client_id}, {client_id * 100 + 1}, 100")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 2}, 200")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 3}, 300")
        for client_id in range(41, 51):
            rows.append(f"dispute, {client_id}, {client_id * 100 + 2},")
        for client_id in range(41, 51):
            rows.append(f"resolve, {client_id}, {client_id * 100 + 2},")

        csv_file = tmp_path / "disputes_test.csv"
        csv_file.write_text('\n'.join(rows))

        accounts = by_client(PaymentsEngine().process_file(str(csv_file)))

        for client_id in range(1, 11):
            assert accounts[client_id].available == Decimal("500"), f"Client {client_id}"
            assert accounts[client_id].held == Decimal("0")
            assert accounts[client_id].locked is False

        for client_id in range(11, 21):
            assert accounts[client_id].available == Decimal("500"), f"Client {client_id}"
            assert accounts[client_id].held == Decimal("0")
            assert accounts[client_id].locked is False

        for client_id in range(21, 31):
            assert accounts[client_id].available == Decimal("400"), f"Client {client_id}"
            assert accounts[client_id].held == Decimal("0")
            assert accounts[client_id].total == Decimal("400")
            assert accounts[client_id].locked is True

        # 150 + 250 - 100 = 300 available, dispute holds 150
        for client_id in range(31, 41):
            assert accounts[client_id].available == Decimal("150"), f"Client {client_id}"
            assert accounts[client_id].held == Decimal("150")
            assert accounts[client_id].total == Decimal("300")
            assert accounts[client_id].locked is False

        for client_id in range(41, 51):
            assert accounts[client_id].available == Decimal("600"), f"Client {client_id}"
            assert accounts[client_id].held == Decimal("0")
            assert accounts[client_id].locked is False


class TestReplayProperties:
    def test_balances_never_negative_and_total_consistent(self):
        engine = PaymentsEngine()
        for transaction in random_stream(seed=7):
            engine.apply(transaction)
            for account in engine.snapshot():
                assert account.available >= 0, account
                assert account.held >= 0, account
                assert account.total == account.available + account.held

    def test_skipped_event_leaves_state_unchanged(self):
        engine = PaymentsEngine()
        for transaction in random_stream(seed=11):
            before = [(a.client_id, a.available, a.held, a.locked) for a in engine.snapshot()]
            result = engine.apply(transaction)
            after = [(a.client_id, a.available, a.held, a.locked) for a in engine.snapshot()]
            if not result.is_applied:
                # only a lazily created, empty account may appear
                assert after[:len(before)] == before
                assert all(row[1:] == (Decimal("0"), Decimal("0"), False) for row in after[len(before):])

    def test_replay_determinism(self):
        """Same stream on fresh engines must produce identical snapshots."""
        events = random_stream(seed=3)
        results = []
        for _ in range(5):
            accounts = PaymentsEngine().process_transactions(events)
            results.append([(a.client_id, a.available, a.held, a.total, a.locked) for a in accounts])

        assert all(result == results[0] for result in results)

    def test_engines_do_not_share_state(self):
        first = PaymentsEngine()
        first.apply(Transaction(TransactionType.DEPOSIT, 1, 1, Decimal("10")))

        second = PaymentsEngine()
        assert second.snapshot() == []
        assert second.apply(Transaction(TransactionType.DEPOSIT, 1, 1, Decimal("10"))).is_applied
