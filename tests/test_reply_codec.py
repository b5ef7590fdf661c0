"""Tests for the reply protocol codec and prompt construction."""

from contracts import AnomalyKind, Message, MessageRole, Phase
from protocol import (
    EXTRACT_END,
    EXTRACT_START,
    PHASE_MARKER,
    build_document_prompt,
    build_system_prompt,
    build_turns,
    build_welcome_prompt,
    clean_reply_text,
    decode_reply,
    encode_reply,
    extraction_instructions,
    parse_extracted,
    parse_phase_directive,
    render_extraction_block,
    render_phase_directive,
)


FULL_REPLY = """Thanks, that helps a lot. Who are the main users?
---EXTRACTED---
[title]
Acme Checkout
[/title]
[problem_statement]
Checkout takes too long on mobile.
[/problem_statement]
---/EXTRACTED---
---PHASE:Requirements---"""


def kinds(anomalies):
    return [a.kind for a in anomalies]


class TestParseExtracted:
    """Test scanning of the extraction block."""

    def test_well_formed_block(self):
        assert parse_extracted(FULL_REPLY) == {
            "title": "Acme Checkout",
            "problem_statement": "Checkout takes too long on mobile.",
        }

    def test_no_block(self):
        assert parse_extracted("Just chatting.") == {}

    def test_unterminated_block(self):
        anomalies = []
        text = "Hi\n---EXTRACTED---\n[title]\nAcme\n[/title]\n"
        assert parse_extracted(text, anomalies) == {}
        assert kinds(anomalies) == [AnomalyKind.UNTERMINATED_BLOCK]

    def test_end_before_start(self):
        text = f"{EXTRACT_END}\n{EXTRACT_START}\n[title]\nAcme\n[/title]"
        assert parse_extracted(text) == {}

    def test_unmatched_key_is_skipped(self):
        anomalies = []
        text = (
            f"{EXTRACT_START}\n[title]\nAcme\n[/title]\n"
            "[risks]\nnever closed\n"
            f"[scope]\nWeb only\n[/scope]\n{EXTRACT_END}"
        )
        assert parse_extracted(text, anomalies) == {"title": "Acme", "scope": "Web only"}
        assert AnomalyKind.UNMATCHED_KEY in kinds(anomalies)

    def test_stray_close_tag_is_skipped(self):
        anomalies = []
        text = f"{EXTRACT_START}\n[/title]\n[goals]\nGrow\n[/goals]\n{EXTRACT_END}"
        assert parse_extracted(text, anomalies) == {"goals": "Grow"}
        assert kinds(anomalies) == [AnomalyKind.STRAY_CLOSE_TAG]

    def test_blank_entries_dropped(self):
        anomalies = []
        text = f"{EXTRACT_START}\n[title]\n   \n[/title]\n[]\n[users]\nShoppers\n[/users]\n{EXTRACT_END}"
        assert parse_extracted(text, anomalies) == {"users": "Shoppers"}
        assert AnomalyKind.EMPTY_ENTRY in kinds(anomalies)
        assert AnomalyKind.BLANK_KEY in kinds(anomalies)

    def test_duplicate_key_last_wins(self):
        text = f"{EXTRACT_START}\n[title]\nOld\n[/title]\n[title]\nNew\n[/title]\n{EXTRACT_END}"
        assert parse_extracted(text) == {"title": "New"}

    def test_unknown_keys_are_kept(self):
        text = f"{EXTRACT_START}\n[budget]\n10k\n[/budget]\n{EXTRACT_END}"
        assert parse_extracted(text) == {"budget": "10k"}

    def test_multiline_content_trimmed(self):
        text = f"{EXTRACT_START}\n[user_stories]\n\n- As a buyer...\n- As an admin...\n\n[/user_stories]\n{EXTRACT_END}"
        assert parse_extracted(text) == {"user_stories": "- As a buyer...\n- As an admin..."}


class TestPhaseDirective:
    """Test the ---PHASE:Name--- directive."""

    def test_known_phase(self):
        assert parse_phase_directive("ok\n---PHASE:Technical---") == Phase.TECHNICAL

    def test_case_insensitive(self):
        assert parse_phase_directive("---PHASE:acceptancecriteria---") == Phase.ACCEPTANCE_CRITERIA

    def test_unknown_phase_ignored(self):
        anomalies = []
        assert parse_phase_directive("---PHASE:Bogus---", anomalies) is None
        assert kinds(anomalies) == [AnomalyKind.UNKNOWN_PHASE]

    def test_first_directive_wins(self):
        assert parse_phase_directive("---PHASE:Review---\n---PHASE:Technical---") == Phase.REVIEW

    def test_absent(self):
        assert parse_phase_directive("No directive here") is None

    def test_unterminated(self):
        anomalies = []
        assert parse_phase_directive("---PHASE:Review", anomalies) is None
        assert kinds(anomalies) == [AnomalyKind.UNTERMINATED_DIRECTIVE]


class TestCleanReplyText:
    """Test removal of markup from the visible reply."""

    def test_strips_block_and_directive(self):
        assert clean_reply_text(FULL_REPLY) == "Thanks, that helps a lot. Who are the main users?"

    def test_plain_text_is_trimmed(self):
        assert clean_reply_text("  hello there \n") == "hello there"

    def test_text_after_block_kept(self):
        text = f"Before.\n{EXTRACT_START}\n[title]\nA\n[/title]\n{EXTRACT_END}\nAfter."
        assert clean_reply_text(text) == "Before.\n\nAfter."

    def test_no_marker_leaks_from_malformed_markup(self):
        for text in (
            "Question?\n---EXTRACTED---\n[title]\nAcme",
            "Question?\n---/EXTRACTED---",
            "Question?\n---PHASE:Review",
        ):
            cleaned = clean_reply_text(text)
            assert cleaned == "Question?"
            assert EXTRACT_START not in cleaned
            assert EXTRACT_END not in cleaned
            assert PHASE_MARKER not in cleaned

    def test_every_block_removed(self):
        text = (
            f"Hi\n{EXTRACT_START}\n[title]\nA\n[/title]\n{EXTRACT_END}\nmore\n"
            f"{EXTRACT_START}\n[risks]\nB\n[/risks]\n{EXTRACT_END}"
        )
        assert clean_reply_text(text) == "Hi\n\nmore"

    def test_every_directive_removed(self):
        assert clean_reply_text("Hi ---PHASE:Technical--- and ---PHASE:Review---") == "Hi  and"

    def test_only_first_block_and_directive_decoded(self):
        text = (
            f"Hi\n{EXTRACT_START}\n[title]\nA\n[/title]\n{EXTRACT_END}\n---PHASE:Technical---\n"
            f"{EXTRACT_START}\n[risks]\nB\n[/risks]\n{EXTRACT_END}\n---PHASE:Review---"
        )
        decoded = decode_reply(text)
        assert decoded.reply == "Hi"
        assert decoded.extracted == {"title": "A"}
        assert decoded.phase == Phase.TECHNICAL


class TestDecodeReply:
    """Test the combined decoder."""

    def test_full_reply(self):
        decoded = decode_reply(FULL_REPLY)
        assert decoded.reply == "Thanks, that helps a lot. Who are the main users?"
        assert decoded.extracted["title"] == "Acme Checkout"
        assert decoded.phase == Phase.REQUIREMENTS
        assert decoded.anomalies == []
        assert decoded.has_data

    def test_none_and_empty(self):
        for text in (None, ""):
            decoded = decode_reply(text)
            assert decoded.reply == ""
            assert decoded.extracted == {}
            assert decoded.phase is None

    def test_malformed_never_raises(self):
        decoded = decode_reply("[[[]]] ---EXTRACTED--- [a] ---PHASE: ---/EXTRACTED---")
        assert decoded.phase is None
        assert EXTRACT_START not in decoded.reply

    def test_encoded_reply_decodes(self):
        text = encode_reply("Next question?", {"title": "Acme"}, Phase.TECHNICAL)
        decoded = decode_reply(text)
        assert decoded.reply == "Next question?"
        assert decoded.extracted == {"title": "Acme"}
        assert decoded.phase == Phase.TECHNICAL


class TestEncoding:
    """Test rendering of the marker grammar."""

    def test_render_block(self):
        assert render_extraction_block({"title": "Acme"}) == (
            "---EXTRACTED---\n[title]\nAcme\n[/title]\n---/EXTRACTED---"
        )
        assert render_extraction_block({}) == ""

    def test_render_directive(self):
        assert render_phase_directive(Phase.ACCEPTANCE_CRITERIA) == "---PHASE:AcceptanceCriteria---"

    def test_plain_encode(self):
        assert encode_reply("Hello") == "Hello"


class TestPrompts:
    """Test prompt construction."""

    def test_system_prompt_lists_vocabulary(self, small_template):
        prompt = build_system_prompt(
            small_template,
            Phase.DISCOVERY,
            {"title": "Acme"},
            ["Problem Statement"],
            project_context="Internal tool",
        )
        assert "## Current Interview Phase: Discovery" in prompt
        assert "- Product Title: Name of the product" in prompt
        assert "Hints: What hurts?" in prompt
        assert "Problem Statement" in prompt
        assert "## Project Context\nInternal tool" in prompt
        assert "### title\nAcme" in prompt
        assert "Use these section keys: title, problem_statement, risks" in prompt
        assert "Valid phases: Discovery, Requirements, Technical, AcceptanceCriteria, Review" in prompt

    def test_system_prompt_nothing_missing(self, small_template):
        prompt = build_system_prompt(small_template, Phase.REVIEW, {}, [])
        assert "not yet covered)\nNone" in prompt
        assert "No specific sections mapped to this phase." in prompt
        assert "No data extracted yet." in prompt
        assert "Project Context" not in prompt

    def test_extraction_instructions_use_markers(self, small_template):
        text = extraction_instructions(small_template)
        assert EXTRACT_START in text and EXTRACT_END in text
        assert f"{PHASE_MARKER}NextPhaseName---" in text

    def test_welcome_prompt(self):
        assert "Discovery phase" in build_welcome_prompt()
        assert "The project context is: Payments" in build_welcome_prompt("Payments")

    def test_build_turns_window(self):
        messages = [
            Message(role=MessageRole.USER if i % 2 == 0 else MessageRole.ASSISTANT, content=str(i))
            for i in range(10)
        ]
        turns = build_turns(messages, max_turns=2)
        assert [t["content"] for t in turns] == ["6", "7", "8", "9"]
        assert turns[0]["role"] == "user"

    def test_build_turns_prepends_opening_instruction(self):
        messages = [
            Message(role=MessageRole.ASSISTANT, content="Hi, I'm your interviewer."),
            Message(role=MessageRole.USER, content="We build payroll software."),
        ]
        turns = build_turns(messages, max_turns=50, project_context="Payroll")
        assert len(turns) == 3
        assert turns[0]["role"] == "user"
        assert "Payroll" in turns[0]["content"]
        assert turns[1] == {"role": "assistant", "content": "Hi, I'm your interviewer."}

    def test_document_prompt(self, small_template):
        system, user = build_document_prompt({"title": "Acme"}, small_template)
        assert "[TO BE COMPLETED]" in system
        assert "- **Risks** (key: risks): What could go wrong" in system
        assert "[title]\nAcme" in user
