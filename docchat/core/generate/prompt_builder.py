from docchat.models.message import ChatMessage
from docchat.models.passage import RetrievedPassage

INSTRUCTIONS = """Use the following pieces of context (or previous conversation if needed) to answer the user's question in markdown format.
If you don't know the answer, just say that you don't know, don't try to make up an answer."""

SEPARATOR = "----------------"

class PromptBuilder:
    @staticmethod
    def format_history(history: list[ChatMessage]) -> str:
        """Oldest-first history as alternating User/Assistant turns."""
        lines = []
        for msg in history:
            role = "User" if msg.is_user_message else "Assistant"
            lines.append(f"{role}: {msg.text}\n")
        return "".join(lines)

    @staticmethod
    def build_prompt(question: str,
                     history: list[ChatMessage],
                     passages: list[RetrievedPassage]) -> str:
        context_str = "\n\n".join(p.text for p in passages)

        return (
            f"{INSTRUCTIONS}\n\n"
            f"{SEPARATOR}\n\n"
            f"PREVIOUS CONVERSATION:\n{PromptBuilder.format_history(history)}\n"
            f"{SEPARATOR}\n\n"
            f"CONTEXT:\n{context_str}\n\n"
            f"USER INPUT: {question}"
        )

    @staticmethod
    def build_messages(question: str,
                       history: list[ChatMessage],
                       passages: list[RetrievedPassage]) -> list[dict]:
        """Wraps the single prompt in the chat-completions message format."""
        return [
            {"role": "user", "content": PromptBuilder.build_prompt(question, history, passages)}
        ]
