"""Tests for the read-side selectors (audit log, transactions, organizations, users)."""

from decimal import Decimal
from uuid import uuid4

import pytest

from expense_kernel.domain.roles import Role
from expense_kernel.domain.transaction_state import TransactionState
from expense_kernel.models.audit_record import AuditAction, AuditObjectType
from expense_kernel.selectors import UserSelector


@pytest.fixture
def three_transactions(workflow, org, yesterday, deterministic_clock):
    """Three transactions: #1 approved, #2 rejected, #3 pending."""
    refs = []
    for amount in ("10.00", "20.00", "30.00"):
        refs.append(
            workflow.create_transaction(
                org.wallet_id, org.member.id, org.reviewer.id, "out", amount, yesterday,
            )
        )
        deterministic_clock.advance(60)
    workflow.resolve_transaction(org.wallet_id, 1, org.reviewer.id, "approved")
    workflow.resolve_transaction(org.wallet_id, 2, org.reviewer.id, "rejected")
    return refs


class TestAuditSelector:

    def test_newest_first(self, audit_selector, org):
        records = audit_selector.list_for_organization(org.organization_id)
        assert [r.seq for r in records] == [2, 1]
        assert records[0].object_type == AuditObjectType.WALLET
        assert records[1].action == AuditAction.CREATE

    def test_limit_and_offset(self, audit_selector, org, three_transactions):
        total = audit_selector.count_for_organization(org.organization_id)
        page = audit_selector.list_for_organization(org.organization_id, limit=2, offset=1)
        assert [r.seq for r in page] == [total - 1, total - 2]

    def test_count(self, audit_selector, org, three_transactions):
        # org + wallet + 3 creations + approve + balance update + reject
        assert audit_selector.count_for_organization(org.organization_id) == 8

    def test_list_for_object(self, audit_selector, org, three_transactions):
        records = audit_selector.list_for_object(
            AuditObjectType.TRANSACTION, f"{org.wallet_id}/1",
        )
        assert [r.action for r in records] == [AuditAction.APPROVE, AuditAction.CREATE]

    def test_other_organization_not_listed(self, audit_selector, create_organization, org):
        other, _ = create_organization("Globex")
        records = audit_selector.list_for_organization(other.id)
        assert [r.message for r in records] == ["Created organization Globex"]

    def test_unknown_organization_is_empty(self, audit_selector):
        assert audit_selector.list_for_organization(uuid4()) == []
        assert audit_selector.count_for_organization(uuid4()) == 0


class TestTransactionSelector:

    def test_get(self, transaction_selector, org, three_transactions):
        snapshot = transaction_selector.get(org.wallet_id, 1)
        assert snapshot.state is TransactionState.APPROVED
        assert snapshot.value == Decimal("-10.00")
        assert snapshot.is_terminal

    def test_get_missing(self, transaction_selector, org):
        assert transaction_selector.get(org.wallet_id, 42) is None

    def test_list_newest_number_first(self, transaction_selector, org, three_transactions):
        listed = transaction_selector.list_for_wallet(org.wallet_id)
        assert [t.ref.number for t in listed] == [3, 2, 1]

    def test_list_filtered_by_state(self, transaction_selector, org, three_transactions):
        listed = transaction_selector.list_for_wallet(org.wallet_id, TransactionState.REJECTED)
        assert [t.ref.number for t in listed] == [2]

    def test_pending_for_reviewer(
        self, transaction_selector, workflow, org, three_transactions, yesterday,
    ):
        workflow.create_transaction(
            org.wallet_id, org.member.id, org.admin.id, "in", "5.00", yesterday,
        )
        pending = transaction_selector.pending_for_reviewer(org.reviewer.id)
        assert [t.ref.number for t in pending] == [3]
        scoped = transaction_selector.pending_for_reviewer(org.admin.id, org.organization_id)
        assert [t.ref.number for t in scoped] == [4]

    def test_pending_for_reviewer_other_organization(
        self, transaction_selector, org, three_transactions,
    ):
        assert transaction_selector.pending_for_reviewer(org.reviewer.id, uuid4()) == []


class TestOrganizationSelector:

    def test_get_wallet(self, organization_selector, org, three_transactions):
        wallet = organization_selector.get_wallet(org.wallet_id)
        assert wallet.balance == Decimal("90.00")
        assert wallet.transaction_count == 3

    def test_get_missing_wallet(self, organization_selector):
        assert organization_selector.get_wallet(uuid4()) is None

    def test_wallets_ordered_by_name(self, organization_selector, org, create_wallet):
        create_wallet(org.organization, org.owner, "5.00", name="Coffee")
        names = [w.name for w in organization_selector.list_wallets(org.organization_id)]
        assert names == ["Coffee", "Petty cash"]

    def test_members_ordered_by_username(self, organization_selector, create_organization,
                                         create_user, add_member):
        organization, _ = create_organization("Roster", owner=create_user("zed"))
        add_member(organization, Role.REVIEWER, create_user("amy"))
        add_member(organization, Role.MEMBER, create_user("mo"))

        members = organization_selector.list_members(organization.id)
        assert [(m.username, m.role) for m in members] == [
            ("amy", "Reviewer"),
            ("mo", "Member"),
            ("zed", "Owner"),
        ]

    def test_organizations_for_user(self, organization_selector, create_organization,
                                    create_user, add_member):
        user = create_user()
        add_member(create_organization("Beta")[0], Role.MEMBER, user)
        create_organization("Alpha", owner=user)
        create_organization("Gamma")

        listed = organization_selector.organizations_for_user(user.id)
        assert [(o.name, o.role) for o in listed] == [("Alpha", "Owner"), ("Beta", "Member")]


class TestUserSelector:

    @pytest.fixture
    def user_selector(self, session):
        return UserSelector(session)

    @pytest.fixture
    def token(self):
        return uuid4().hex[:10]

    def test_search_excludes_requester(self, user_selector, create_user, token):
        requester = create_user(f"{token}me")
        create_user(f"{token}b")
        create_user(f"{token}a")

        found = user_selector.search(token, exclude_user_id=requester.id)

        assert [u.username for u in found] == [f"{token}a", f"{token}b"]

    def test_search_by_name_is_case_insensitive(self, user_selector, create_user, session, token):
        requester = create_user()
        named = create_user(f"{token}x")
        named.first_name = "Ada"
        named.last_name = f"Lovelace{token}"
        session.flush()

        found = user_selector.search(f"LOVELACE{token}".upper(), exclude_user_id=requester.id)

        assert [(u.username, u.display_name) for u in found] == [
            (f"{token}x", f"Ada Lovelace{token}"),
        ]

    def test_display_name_falls_back_to_username(self, user_selector, create_user, token):
        create_user(f"{token}plain")
        found = user_selector.search(token, exclude_user_id=uuid4())
        assert found[0].display_name == f"{token}plain"

    def test_limit(self, user_selector, create_user, token):
        for i in range(5):
            create_user(f"{token}{i}")
        assert len(user_selector.search(token, exclude_user_id=uuid4(), limit=3)) == 3
