from types import SimpleNamespace

import pytest

from app.services.sequencing import can_sign, next_signer, unlocked_by


def signer(id, order, status="pending"):
    return SimpleNamespace(id=id, signing_order=order, status=status)


class TestCanSign:
    @pytest.mark.parametrize("signed_before", [0, 1, 2, 3])
    def test_sequential_chain(self, signed_before):
        chain = [signer(i, i, "signed" if i < signed_before else "pending") for i in range(4)]
        for s in chain:
            expected = s.status == "pending" and s.signing_order == signed_before
            assert can_sign(s, chain, "sequential") is expected

    def test_parallel_and_single_ignore_order(self):
        chain = [signer(1, 0), signer(2, 1)]
        assert can_sign(chain[1], chain, "parallel")
        assert can_sign(chain[0], chain[:1], "single")

    def test_resolved_signer_cannot_sign(self):
        chain = [signer(1, None, "signed"), signer(2, None, "declined")]
        assert not any(can_sign(s, chain, "parallel") for s in chain)

    def test_unordered_signer_is_always_eligible(self):
        chain = [signer(1, 0), signer(2, 1), signer(3, None)]
        assert can_sign(chain[2], chain, "sequential")
        assert not can_sign(chain[1], chain, "sequential")

    def test_unordered_signer_does_not_block_the_chain(self):
        chain = [signer(1, None), signer(2, 0, "signed"), signer(3, 1)]
        assert can_sign(chain[2], chain, "sequential")

    def test_tied_orders_open_together(self):
        chain = [signer(1, 0, "signed"), signer(2, 1), signer(3, 1), signer(4, 2)]
        assert can_sign(chain[1], chain, "sequential")
        assert can_sign(chain[2], chain, "sequential")
        assert not can_sign(chain[3], chain, "sequential")


class TestNextSigner:
    def test_returns_following_order(self):
        document = SimpleNamespace(workflow_type="sequential", signers=[signer(1, 0), signer(2, 1)])
        assert next_signer(document, 0).id == 2
        assert next_signer(document, 1) is None

    def test_none_outside_sequential(self):
        document = SimpleNamespace(workflow_type="parallel", signers=[signer(1, 0), signer(2, 1)])
        assert next_signer(document, 0) is None


class TestUnlockedBy:
    def test_returns_following_order(self):
        chain = [signer(1, 0, "signed"), signer(2, 1), signer(3, 2)]
        assert [s.id for s in unlocked_by(chain[0], chain, "sequential")] == [2]

    def test_skips_gaps_in_the_order(self):
        chain = [signer(1, 0, "signed"), signer(2, 5)]
        assert [s.id for s in unlocked_by(chain[0], chain, "sequential")] == [2]

    def test_tied_group_opens_once_complete(self):
        chain = [signer(1, 0, "signed"), signer(2, 0), signer(3, 1), signer(4, 1)]
        assert unlocked_by(chain[0], chain, "sequential") == []
        chain[1].status = "signed"
        assert [s.id for s in unlocked_by(chain[1], chain, "sequential")] == [3, 4]

    def test_empty_outside_sequential(self):
        chain = [signer(1, 0, "signed"), signer(2, 1)]
        assert unlocked_by(chain[0], chain, "parallel") == []
        assert unlocked_by(signer(3, None, "signed"), chain, "sequential") == []
