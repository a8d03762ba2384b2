import pytest

from auditflow.errors import InvalidCode
from auditflow.models import PendingOTP
from auditflow.services.otp import generate_otp


@pytest.fixture
def otp(services):
    return services.otp


def test_generate_otp_shape():
    for _ in range(50):
        code = generate_otp()
        assert len(code) == 6
        assert code.isdigit()
        assert code[0] != '0'
    assert len(generate_otp(8)) == 8


def test_code_is_stored_hashed(otp):
    code = otp.issue('u1', 'a@bumex.mr')
    record = otp._get('u1')
    assert record.otp_hash != code
    assert record.attempts == 0
    assert record.max_attempts == 3
    assert (record.expires_at - record.created_at).total_seconds() == 300


def test_valid_code_is_single_use(otp):
    code = otp.issue('u1', 'a@bumex.mr')
    otp.verify('u1', code)
    assert not otp.has_pending('u1')
    with pytest.raises(InvalidCode):
        otp.verify('u1', code)


def test_wrong_code_counts_attempts(otp):
    code = otp.issue('u1', 'a@bumex.mr')
    wrong = '999999' if code != '999999' else '100000'
    with pytest.raises(InvalidCode):
        otp.verify('u1', wrong)
    assert otp._get('u1').attempts == 1
    otp.verify('u1', code)


def test_attempts_are_capped(otp):
    code = otp.issue('u1', 'a@bumex.mr')
    wrong = '999999' if code != '999999' else '100000'
    for _ in range(3):
        with pytest.raises(InvalidCode):
            otp.verify('u1', wrong)
    assert otp._get('u1') is None
    with pytest.raises(InvalidCode):
        otp.verify('u1', code)


def test_expired_code_is_invalid(otp, clock):
    code = otp.issue('u1', 'a@bumex.mr')
    clock.advance(minutes=5, seconds=1)
    assert not otp.has_pending('u1')
    with pytest.raises(InvalidCode):
        otp.verify('u1', code)
    assert otp._get('u1') is None


def test_code_valid_until_expiry(otp, clock):
    code = otp.issue('u1', 'a@bumex.mr')
    clock.advance(minutes=5)
    assert otp.has_pending('u1')
    otp.verify('u1', code)


def test_new_code_replaces_previous(otp):
    first = otp.issue('u1', 'a@bumex.mr')
    second = otp.issue('u1', 'a@bumex.mr')
    if first != second:
        with pytest.raises(InvalidCode):
            otp.verify('u1', first)
    otp.verify('u1', second)
    assert PendingOTP.query.count() == 0


def test_codes_are_bound_to_their_user(otp):
    code = otp.issue('u1', 'a@bumex.mr')
    otp.issue('u2', 'b@bumex.mr')
    assert otp.hash_code('u1', code) != otp.hash_code('u2', code)


def test_missing_code_is_invalid(otp):
    with pytest.raises(InvalidCode):
        otp.verify('nobody', '123456')


def test_discard_and_cleanup(otp, clock):
    otp.issue('u1', 'a@bumex.mr')
    otp.discard('u1')
    assert not otp.has_pending('u1')

    otp.issue('u2', 'b@bumex.mr')
    otp.cleanup_expired('u2')
    assert otp.has_pending('u2')
    clock.advance(minutes=6)
    otp.cleanup_expired('u2')
    assert otp._get('u2') is None


def test_purge_expired(otp, clock):
    otp.issue('old', 'a@bumex.mr')
    clock.advance(minutes=10)
    otp.issue('fresh', 'b@bumex.mr')
    assert otp.purge_expired() == 1
    assert [r.user_id for r in PendingOTP.query.all()] == ['fresh']
