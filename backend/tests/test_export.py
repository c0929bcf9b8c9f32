"""Tests for conversation export."""

from megachat.schemas.message import Attachment, AttachmentType, Message, MessageStatus, Sender
from megachat.services.export import export_conversation


def sample_messages():
    original = Message(id="1", text="see this", sender=Sender.USER, sender_name="Ana", status=MessageStatus.READ,
                       attachment=Attachment(type=AttachmentType.DOCUMENT, url="blob:doc", name="notes.pdf"))
    reply = Message(id="2", text="got it", sender=Sender.ASSISTANT, sender_name="Mega AI",
                    status=MessageStatus.READ, reply_to=original.snapshot())
    system = Message(id="3", text='You created group "Team" with 2 members.', sender=Sender.SYSTEM, is_system=True)
    return [original, reply, system]


class TestExport:

    def test_markdown(self):
        result = export_conversation("chat-1", sample_messages(), format="markdown")
        content = result["content"]

        assert result["format"] == "markdown"
        assert content.startswith("# chat-1\n")
        assert "## 👤 User (Ana)" in content
        assert "*Attached: document - notes.pdf (blob:doc)*" in content
        assert "> Ana: see this" in content
        assert "## ⚙️ System" in content

    def test_json(self):
        result = export_conversation("chat-1", sample_messages(), format="json")

        assert result["format"] == "json"
        records = result["content"]["messages"]
        assert [r["id"] for r in records] == ["1", "2", "3"]
        assert records[1]["reply_to"]["text"] == "see this"
        assert records[2]["is_system"] is True
