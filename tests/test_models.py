# =============================================================================
# Tests for the core models
# =============================================================================

import dataclasses

import pytest

from hawk_mailer.core import (
    Address,
    AddressError,
    Attachment,
    ContentType,
    HeaderError,
    MailError,
    Message,
    Outcome,
    ProtocolError,
)


class TestAddress:
    def test_str_with_name(self):
        assert str(Address("alice@example.com", "Alice")) == '"Alice" <alice@example.com>'

    def test_str_without_name(self):
        assert str(Address("alice@example.com")) == "alice@example.com"

    def test_name_quotes_are_escaped(self):
        address = Address("alice@example.com", 'Alice "Al" Smith')
        assert str(address) == '"Alice \\"Al\\" Smith" <alice@example.com>'

    def test_whitespace_is_stripped(self):
        address = Address("  alice@example.com ", " Alice ")
        assert address.email == "alice@example.com"
        assert address.name == "Alice"

    @pytest.mark.parametrize("value", ["", "not-an-address", "a@", "@example.com", "a b@example.com"])
    def test_invalid_address(self, value):
        with pytest.raises(AddressError):
            Address(value)

    @pytest.mark.parametrize("value", ["root@localhost", "ops@corp.local", "backup@nas.lan"])
    def test_local_mailboxes_are_accepted(self, value):
        assert Address(value).email == value

    @pytest.mark.parametrize("name", ["Alice\r\nBcc: victim@example.net", "Alice\nX", "Alice\rX", "A\0"])
    def test_line_break_in_name_is_rejected(self, name):
        with pytest.raises(AddressError):
            Address("alice@example.com", name)

    def test_address_error_is_value_error(self):
        with pytest.raises(ValueError):
            Address("nope")

    def test_parse_extended(self):
        address = Address.parse("Joe Smith <joe@example.com>")
        assert address == Address("joe@example.com", "Joe Smith")

    def test_parse_bare(self):
        assert Address.parse("joe@example.com") == Address("joe@example.com")

    def test_parse_garbage(self):
        with pytest.raises(AddressError):
            Address.parse("<>")

    def test_domain(self):
        assert Address("joe@mail.example.com").domain == "mail.example.com"

    def test_frozen(self):
        address = Address("joe@example.com")
        with pytest.raises(dataclasses.FrozenInstanceError):
            address.email = "other@example.com"


class TestMessage:
    def test_defaults(self, sender):
        message = Message(sender=sender)
        assert message.reply_to == sender
        assert message.return_path == "alice@example.com"
        assert message.content_type is ContentType.PLAIN
        assert message.charset == "utf-8"
        assert message.encoding == "8bit"
        assert message.to is None
        assert message.subscribers is None

    def test_string_addresses_are_parsed(self):
        message = Message(sender="Alice <alice@example.com>", to=["bob@example.org", "Carol <carol@example.org>"])
        assert message.sender == Address("alice@example.com", "Alice")
        assert message.to == (Address("bob@example.org"), Address("carol@example.org", "Carol"))

    def test_empty_list_is_not_none(self, sender):
        assert Message(sender=sender, to=[]).to == ()

    def test_invalid_recipient(self, sender):
        with pytest.raises(AddressError):
            Message(sender=sender, to=["broken"])

    def test_explicit_return_path(self, sender):
        message = Message(sender=sender, return_path="bounces@example.com")
        assert message.return_path == "bounces@example.com"

    def test_recipients_and_copies(self, html_message):
        assert html_message.recipients() == ["bob@example.org"]
        assert html_message.copies() == ["carol@example.org", "dave@example.org"]
        assert html_message.copies(include_bcc=False) == ["carol@example.org"]

    def test_attachment_paths_are_wrapped(self, sender, temp_dir):
        message = Message(sender=sender, attachments=[temp_dir / "x.txt"])
        assert isinstance(message.attachments[0], Attachment)
        assert message.attachments[0].filename == "x.txt"

    def test_headers_are_copied(self, sender):
        extra = {"X-Tag": "1"}
        message = Message(sender=sender, headers=extra)
        extra["X-Tag"] = "2"
        assert message.headers == {"X-Tag": "1"}

    def test_headers_are_read_only(self, sender):
        message = Message(sender=sender, headers={"X-Tag": "1"})
        with pytest.raises(TypeError):
            message.headers["X-Tag"] = "2"

    @pytest.mark.parametrize("headers", [
        {"X-Tag": "1\r\nBcc: victim@example.net"},
        {"X-Tag": "1\nBcc: victim@example.net"},
        {"X-Bad Name": "1"},
        {"X-Tag:": "1"},
        {"": "1"},
    ])
    def test_header_injection_is_rejected(self, sender, headers):
        with pytest.raises(HeaderError):
            Message(sender=sender, headers=headers)

    def test_hashable(self, sender):
        first = Message(sender=sender, to=["bob@example.org"], headers={"X-Tag": "1"})
        second = Message(sender=sender, to=["bob@example.org"], headers={"X-Tag": "1"})
        assert first == second
        assert hash(first) == hash(second)
        assert len({first, second}) == 1

    def test_is_html(self, html_message, sample_message):
        assert html_message.is_html
        assert not sample_message.is_html


class TestContentType:
    @pytest.mark.parametrize("value,expected", [
        ("html", ContentType.HTML),
        ("HTML", ContentType.HTML),
        ("plain", ContentType.PLAIN),
        ("text", ContentType.PLAIN),
        ("anything", ContentType.PLAIN),
        (ContentType.HTML, ContentType.HTML),
    ])
    def test_from_value(self, value, expected):
        assert ContentType.from_value(value) is expected


class TestOutcome:
    def test_starts_failed_and_empty(self):
        outcome = Outcome()
        assert not outcome
        assert outcome.errors == []
        assert outcome.log == []

    def test_success_is_truthy(self):
        assert Outcome(success=True)

    def test_add_exception_keeps_code(self):
        outcome = Outcome()
        outcome.add_exception(ProtocolError("Expected 250, got 550 no such user", code=550))
        outcome.add_exception(MailError("boom"))
        assert outcome.errors == [(550, "Expected 250, got 550 no such user"), (None, "boom")]

    def test_log(self):
        outcome = Outcome()
        outcome.add_log(">> QUIT")
        assert outcome.log == [">> QUIT"]
