import pytest

from auditflow.services.review_state import (
    COMPLETED, LEVELS, NOT_REVIEWED, READY_FOR_REVIEW, REVIEWED, SectionReview,
)

TIERS = ['staff', 'incharge', 'manager', 'partner', 'lead_partner']


def reviewed_up_to(count):
    state = SectionReview()
    for tier in TIERS[:count]:
        state = state.with_review(tier, f'{tier}-id', tier.title(), '2024-03-01T09:00:00Z')
    return state


def test_new_section_is_not_reviewed():
    state = SectionReview()
    assert state.current_review_level == 'staff'
    assert state.status == NOT_REVIEWED


def test_levels_advance_one_tier_at_a_time():
    seen = []
    state = SectionReview()
    for tier in TIERS:
        seen.append(state.current_review_level)
        state = state.with_review(tier, 'u', 'U', 't')
    seen.append(state.current_review_level)
    assert seen == LEVELS
    assert state.status == REVIEWED


@pytest.mark.parametrize('count', range(0, 6))
def test_status_derivation(count):
    state = reviewed_up_to(count)
    if count == 0:
        assert state.status == NOT_REVIEWED
    elif count == 5:
        assert state.current_review_level == COMPLETED
        assert state.status == REVIEWED
    else:
        assert state.status == READY_FOR_REVIEW


def test_review_out_of_turn_is_rejected():
    with pytest.raises(ValueError):
        SectionReview().with_review('manager', 'u', 'U', 't')


def test_review_does_not_mutate_original():
    state = reviewed_up_to(1)
    state.with_review('incharge', 'u', 'U', 't')
    assert state.incharge_reviews == ()


def test_unreview_cascades_upwards():
    state = reviewed_up_to(5)
    cleared = state.without_reviews_from('incharge', 'i', 'Ivan', 't2')
    assert len(cleared.staff_reviews) == 1
    for tier in TIERS[1:]:
        assert cleared.entries_for(tier) == ()
    assert cleared.current_review_level == 'incharge'
    assert cleared.status == READY_FOR_REVIEW
    assert [log['original_role'] for log in cleared.unreview_logs] == TIERS[1:]


def test_unreview_from_staff_resets_everything():
    cleared = reviewed_up_to(3).without_reviews_from('staff', 'a', 'Admin', 't2')
    assert cleared.current_review_level == 'staff'
    assert cleared.status == NOT_REVIEWED


def test_unreview_never_moves_level_forward():
    for count in range(6):
        state = reviewed_up_to(count)
        for tier in TIERS:
            cleared = state.without_reviews_from(tier, 'x', 'X', 't')
            assert LEVELS.index(cleared.current_review_level) <= LEVELS.index(state.current_review_level)


def test_round_trip_through_dict():
    state = reviewed_up_to(2).without_reviews_from('incharge', 'x', 'X', 't')
    data = state.to_dict()
    assert data['current_review_level'] == 'incharge'
    assert data['status'] == READY_FOR_REVIEW
    assert SectionReview.from_dict(data) == state


def test_from_dict_rejects_malformed_entries():
    with pytest.raises(ValueError):
        SectionReview.from_dict({'staff_reviews': ['not-a-dict']})


def test_completed_and_pending_roles():
    state = reviewed_up_to(2)
    assert state.completed_roles() == ['staff', 'incharge']
    assert state.pending_roles() == ['manager', 'partner', 'lead_partner']
    assert state.highest_reviewed_tier() == 'incharge'
    assert SectionReview().highest_reviewed_tier() is None
