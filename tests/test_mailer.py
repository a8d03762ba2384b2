from unittest.mock import MagicMock, patch

import pytest
import requests

from auditflow.services.mailer import OTPMailer


@pytest.fixture
def mailer():
    return OTPMailer('https://mail.test/emails', 'key-123', 'Bumex <noreply@bumex.mr>',
                     'Your code', timeout=3)


def test_posts_message_to_api(mailer):
    with patch('auditflow.services.mailer.requests.post') as post:
        post.return_value = MagicMock(ok=True, status_code=200)
        result = mailer.send_one_time_code('amina@bumex.mr', '482913', 'Amina')

    assert result.success
    args, kwargs = post.call_args
    assert args[0] == 'https://mail.test/emails'
    assert kwargs['headers'] == {'Authorization': 'Bearer key-123'}
    assert kwargs['timeout'] == 3
    assert kwargs['json']['to'] == ['amina@bumex.mr']
    assert '482913' in kwargs['json']['html']
    assert 'Amina' in kwargs['json']['html']


def test_display_name_is_escaped(mailer):
    message = mailer.build_message('a@bumex.mr', '123456', '<script>x</script>')
    assert '<script>' not in message['html']


def test_api_error_is_reported(mailer):
    with patch('auditflow.services.mailer.requests.post') as post:
        post.return_value = MagicMock(ok=False, status_code=422, text='bad sender')
        result = mailer.send_one_time_code('a@bumex.mr', '123456')
    assert not result.success
    assert '422' in result.error


def test_network_error_is_reported(mailer):
    with patch('auditflow.services.mailer.requests.post',
               side_effect=requests.ConnectionError('unreachable')):
        result = mailer.send_one_time_code('a@bumex.mr', '123456')
    assert not result.success


def test_missing_fields_are_rejected(mailer):
    assert not mailer.send_one_time_code('', '123456').success
    assert not mailer.send_one_time_code('a@bumex.mr', '').success


def test_missing_api_key():
    mailer = OTPMailer('https://mail.test/emails', None, 'x', 'y')
    with patch('auditflow.services.mailer.requests.post') as post:
        result = mailer.send_one_time_code('a@bumex.mr', '123456')
    assert not result.success
    post.assert_not_called()


def test_suppressed_sending_records_outbox():
    mailer = OTPMailer('https://mail.test/emails', 'k', 'x', 'y', suppress_send=True)
    with patch('auditflow.services.mailer.requests.post') as post:
        result = mailer.send_one_time_code('a@bumex.mr', '123456', 'A')
    assert result.success
    post.assert_not_called()
    assert mailer.outbox[0]['code'] == '123456'
