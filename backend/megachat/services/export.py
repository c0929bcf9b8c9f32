"""
Conversation export to markdown or JSON.
"""

from typing import Any, Dict, Sequence

from ..schemas.message import Message, Sender


SENDER_HEADINGS = {
    Sender.USER: "## 👤 User",
    Sender.ASSISTANT: "## 🤖 Assistant",
    Sender.SYSTEM: "## ⚙️ System",
}


def export_markdown(title: str, messages: Sequence[Message]) -> str:
    md_content = f"# {title}\n\n"
    md_content += "*Exported from MegaChat*\n\n---\n\n"

    for msg in messages:
        heading = SENDER_HEADINGS[msg.sender]
        if msg.sender_name and msg.sender != Sender.SYSTEM:
            heading += f" ({msg.sender_name})"
        md_content += f"{heading}\n\n"

        if msg.is_forwarded:
            md_content += "*Forwarded*\n\n"
        if msg.reply_to:
            md_content += f"> {msg.reply_to.sender_name}: {msg.reply_to.text}\n\n"

        if msg.text:
            md_content += f"{msg.text}\n\n"

        if msg.attachment:
            md_content += f"*Attached: {msg.attachment.type.value} - {msg.attachment.name} ({msg.attachment.url})*\n\n"

        md_content += "---\n\n"

    return md_content


def export_json(title: str, messages: Sequence[Message]) -> Dict[str, Any]:
    return {
        "title": title,
        "messages": [msg.model_dump(mode="json") for msg in messages]
    }


def export_conversation(title: str, messages: Sequence[Message], format: str = "markdown") -> Dict[str, Any]:
    """Render a conversation in the requested format."""
    if format == "markdown":
        return {"format": "markdown", "content": export_markdown(title, messages)}
    return {"format": "json", "content": export_json(title, messages)}
