# =============================================================================
# Tests for header and body composition
# =============================================================================

import email
import quopri
import re

import pytest

from hawk_mailer.core import Address, Attachment, ContentType, Message, TransportError
from hawk_mailer.mime import (
    compose_body,
    compose_headers,
    new_boundary,
    q_encode,
    render_headers,
    strip_markup,
)
from hawk_mailer.mime.composer import PREAMBLE


def headers_for(message, protocol="smtp", **kwargs):
    return compose_headers(message, "B", user_agent="hawk-mailer", protocol=protocol, **kwargs)


def html_part(body: str, boundary: str = "B") -> str:
    """The quoted-printable payload of the text/html part."""
    after = body.split("Content-Transfer-Encoding: quoted-printable\n\n", 1)[1]
    return after.split(f"\n\n--{boundary}--", 1)[0]


class TestComposeHeaders:
    def test_plain_message_headers_in_wire_order(self, sample_message):
        headers = headers_for(sample_message)
        assert list(headers) == [
            "User-Agent",
            "X-Mailer",
            "X-Sender",
            "Message-ID",
            "Date",
            "Mime-Version",
            "To",
            "From",
            "Reply-To",
            "Subject",
            "Content-Type",
            "Content-Transfer-Encoding",
        ]

    def test_plain_message_header_values(self, sample_message):
        headers = headers_for(sample_message)
        assert headers["User-Agent"] == headers["X-Mailer"] == "hawk-mailer"
        assert headers["X-Sender"] == "alice@example.com"
        assert headers["To"] == "bob@example.org"
        assert headers["From"] == '"Alice Sender" <alice@example.com>'
        assert headers["Reply-To"] == headers["From"]
        assert headers["Mime-Version"] == "1.0"
        assert headers["Subject"] == q_encode("Test Subject", "utf-8", "\r\n")
        assert headers["Content-Type"] == "text/plain; charset=utf-8"
        assert headers["Content-Transfer-Encoding"] == "8bit"

    def test_message_id_uses_return_path(self, sample_message):
        headers = headers_for(sample_message)
        assert re.fullmatch(r"<[0-9a-f]{32}\.alice@example\.com>", headers["Message-ID"])

    def test_message_ids_are_unique(self, sample_message):
        assert headers_for(sample_message)["Message-ID"] != headers_for(sample_message)["Message-ID"]

    def test_bcc_only_for_smtp(self, html_message):
        assert headers_for(html_message, "smtp")["Bcc"] == "dave@example.org"
        assert "Bcc" not in headers_for(html_message, "sendmail")
        assert "Bcc" not in headers_for(html_message, "mail")

    def test_cc_lists_only_cc_addresses(self, html_message):
        assert headers_for(html_message)["Cc"] == "carol@example.org"

    def test_no_subject_for_mail_protocol(self, sample_message):
        assert "Subject" not in headers_for(sample_message, "mail")
        assert "Subject" in headers_for(sample_message, "sendmail")

    def test_extra_headers_come_first(self, sender):
        message = Message(sender=sender, to=["bob@example.org"], headers={"X-Campaign": "spring"})
        headers = headers_for(message)
        assert list(headers)[0] == "X-Campaign"
        assert headers["X-Campaign"] == "spring"

    def test_priority(self, sender):
        message = Message(sender=sender, to=["bob@example.org"], priority=1)
        assert headers_for(message)["X-Priority"] == "1"

    def test_no_priority_by_default(self, sample_message):
        assert "X-Priority" not in headers_for(sample_message)

    def test_no_to_header_without_to_list(self, sender):
        message = Message(sender=sender, subscribers=["bob@example.org"])
        assert "To" not in headers_for(message)

    def test_explicit_reply_to(self, sender):
        message = Message(sender=sender, to=["bob@example.org"], reply_to="Help <help@example.com>")
        assert headers_for(message)["Reply-To"] == '"Help" <help@example.com>'

    def test_non_ascii_display_name_is_encoded(self):
        message = Message(sender=Address("joerg@example.com", "Jörg Müller"), to=["bob@example.org"])
        value = headers_for(message)["From"]
        assert value == q_encode("Jörg Müller") + " <joerg@example.com>"
        assert value.isascii()

    def test_multipart_html_content_type(self, html_message):
        headers = headers_for(html_message)
        assert headers["Content-Type"] == 'multipart/alternative; boundary="B"'
        assert "Content-Transfer-Encoding" not in headers

    def test_single_part_html_content_type(self, html_message):
        headers = headers_for(html_message, multipart=False)
        assert headers["Content-Type"] == "text/html; charset=utf-8"
        assert headers["Content-Transfer-Encoding"] == "quoted-printable"

    def test_attachments_make_mixed(self, sample_message, temp_dir):
        path = temp_dir / "a.txt"
        path.write_text("x")
        message = Message(sender=sample_message.sender, to=["bob@example.org"], attachments=[path])
        assert headers_for(message)["Content-Type"] == 'multipart/mixed; boundary="mixed_B"'


class TestRenderHeaders:
    def test_lines_end_with_newline(self):
        assert render_headers({"A": "1", "B": "2"}, "\n") == "A: 1\nB: 2\n"

    def test_default_crlf(self):
        assert render_headers({"A": "1"}) == "A: 1\r\n"


class TestComposeBody:
    def test_plain_body_passes_through(self, sample_message):
        assert compose_body(sample_message, "B") == "Hello Bob,\n\nThis is a test.\n"

    def test_plain_body_newlines_follow_transport(self, sample_message):
        assert compose_body(sample_message, "B", newline="\r\n") == "Hello Bob,\r\n\r\nThis is a test.\r\n"

    def test_quoted_printable_plain_body(self, sender):
        message = Message(sender=sender, to=["bob@example.org"], body="a=b", encoding="quoted-printable")
        assert compose_body(message, "B") == "a=3Db"

    def test_unwrap_markers_are_removed_from_plain_body(self, sender):
        message = Message(sender=sender, to=["bob@example.org"], body="a {unwrap}b{/unwrap} c")
        assert compose_body(message, "B") == "a b c"

    def test_multipart_alternative_structure(self, html_message):
        body = compose_body(html_message, "B")
        assert body.startswith(PREAMBLE[0] + "\n" + PREAMBLE[1] + "\n\n--B\n")
        assert (
            "--B\nContent-Type: text/plain; charset=utf-8\n"
            "Content-Transfer-Encoding: 8bit\n\n"
            "HelloThis is news.\n"
        ) in body
        assert (
            "--B\nContent-Type: text/html; charset=utf-8\n"
            "Content-Transfer-Encoding: quoted-printable\n\n"
        ) in body
        assert body.endswith("\n--B--")

    def test_html_part_decodes_to_html(self, html_message):
        body = compose_body(html_message, "B")
        assert quopri.decodestring(html_part(body).encode("ascii")) == html_message.body.encode("utf-8")

    def test_alt_body_is_preferred(self, sender):
        message = Message(
            sender=sender,
            to=["bob@example.org"],
            body="<p>Rich</p>",
            alt_body="Plain version",
            content_type=ContentType.HTML,
        )
        body = compose_body(message, "B")
        assert "Content-Transfer-Encoding: 8bit\n\nPlain version\n" in body

    def test_html_is_word_wrapped(self, sender):
        html = "<p>" + " ".join(["word"] * 60) + "</p>"
        message = Message(sender=sender, to=["bob@example.org"], body=html, content_type="html")
        body = compose_body(message, "B", wordwrap_limit=40)
        decoded = quopri.decodestring(html_part(body).encode("ascii")).decode("utf-8")
        assert all(len(line) <= 40 for line in decoded.split("\n"))
        assert decoded.split() == html.split()

    def test_single_part_html(self, html_message):
        body = compose_body(html_message, "B", multipart=False)
        assert "--B" not in body
        assert quopri.decodestring(body.encode("ascii")) == html_message.body.encode("utf-8")

    def test_unwrap_markers_never_reach_the_wire(self, sender):
        html = '<p>Hi</p>{unwrap}<img src="https://t.example.com/p.gif">{/unwrap}'
        message = Message(sender=sender, to=["bob@example.org"], body=html, content_type="html")
        body = compose_body(message, "B")
        assert "{unwrap}" not in body
        assert "{/unwrap}" not in body

    def test_crlf_body_has_no_bare_lf(self, html_message):
        body = compose_body(html_message, "B", newline="\r\n")
        assert "\n" not in body.replace("\r\n", "")


class TestAttachments:
    def test_mixed_body_parses(self, sample_message, temp_dir):
        data = b"hello attachment\n" * 20
        path = temp_dir / "report.txt"
        path.write_bytes(data)
        message = Message(
            sender=sample_message.sender,
            to=["bob@example.org"],
            subject="Report",
            body="See attached.",
            attachments=[path],
        )

        headers = compose_headers(message, "B", user_agent="hawk-mailer", protocol="smtp")
        body = compose_body(message, "B", newline="\r\n")

        assert (
            "--mixed_B\r\nContent-Type: text/plain; charset=utf-8\r\n"
            "Content-Transfer-Encoding: 8bit\r\n\r\nSee attached."
        ) in body
        assert 'Content-Disposition: attachment; filename="report.txt"' in body
        assert body.endswith("--mixed_B--")

        parsed = email.message_from_string(render_headers(headers) + "\r\n" + body)
        assert parsed.get_content_type() == "multipart/mixed"
        text, attachment = parsed.get_payload()
        assert text.get_content_type() == "text/plain"
        assert attachment.get_filename() == "report.txt"
        assert attachment.get_payload(decode=True) == data

    def test_html_with_attachment_nests_alternative(self, html_message, temp_dir):
        path = temp_dir / "logo.png"
        path.write_bytes(b"\x89PNG\r\n")
        message = Message(
            sender=html_message.sender,
            to=["bob@example.org"],
            body=html_message.body,
            content_type="html",
            attachments=[path],
        )
        body = compose_body(message, "B")
        assert '--mixed_B\nContent-Type: multipart/alternative; boundary="B"\n\n' in body
        assert "\n--B--\n--mixed_B\nContent-Type: image/png;" in body
        assert body.endswith("--mixed_B--")

    def test_base64_lines_fit_76_columns(self, temp_dir):
        path = temp_dir / "blob.bin"
        path.write_bytes(bytes(range(256)) * 10)
        payload = Attachment(path).render("\n").split("\n\n", 1)[1]
        assert all(len(line) <= 76 for line in payload.split("\n"))

    def test_non_ascii_filename(self, temp_dir):
        path = temp_dir / "cv.txt"
        path.write_text("cv")
        rendered = Attachment(path, filename="résumé.txt").render()
        assert "filename*=utf-8''r%C3%A9sum%C3%A9.txt" in rendered

    def test_content_type_is_guessed(self):
        assert Attachment("report.pdf").content_type == "application/pdf"
        assert Attachment("data.unknownext123").content_type == "application/octet-stream"

    def test_explicit_content_type(self):
        assert Attachment("notes", content_type="text/markdown").content_type == "text/markdown"

    def test_missing_file(self, sample_message, temp_dir):
        message = Message(
            sender=sample_message.sender,
            to=["bob@example.org"],
            attachments=[temp_dir / "missing.txt"],
        )
        with pytest.raises(TransportError):
            compose_body(message, "B")


class TestHelpers:
    def test_strip_markup(self):
        assert strip_markup("<p>Hi <b>there</b></p>") == "Hi there"

    def test_new_boundary_is_unique(self):
        first, second = new_boundary(), new_boundary()
        assert first != second
        assert first.startswith("__hawk_mailer_alt_")
