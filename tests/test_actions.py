"""Tests for the prompt, csv and emit actions."""

import pytest

from interpo import ConfigurationError, Engine, PatternCompileError
from interpo.actions import (
    ActionContext,
    CsvAction,
    EmitAction,
    PromptAction,
    get_action,
    list_builtin_actions,
    run_action,
    run_actions,
)
from interpo.actions.csv import csv_safe, header_mode
from interpo.config import CsvConfig, PromptEntry
from interpo.errors import InvalidAnswerError, UnknownActionError


class Recorder:
    """Output sink collecting (line, channel) pairs."""

    def __init__(self):
        self.calls = []

    def __call__(self, line, channel=None):
        self.calls.append((line, channel))

    @property
    def lines(self):
        return [line for line, _ in self.calls]


class Answers:
    """Scripted answers for prompts."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.asked = []

    def __call__(self, prompt, default=None):
        self.asked.append((prompt, default))
        return self.answers.pop(0)


def make_context(session, **kwargs):
    kwargs.setdefault("emit", Recorder())
    return ActionContext(session=session, engine=Engine(), **kwargs)


# =============================================================================
# Registry
# =============================================================================


class TestActionRegistry:
    def test_builtin_actions(self):
        assert set(list_builtin_actions()) == {"prompt", "csv", "emit"}

    def test_get_action(self):
        assert isinstance(get_action("csv"), CsvAction)
        assert get_action("emit").name == "emit"

    def test_unknown_action(self):
        with pytest.raises(UnknownActionError) as exc:
            get_action("mail")
        assert exc.value.name == "mail"


# =============================================================================
# csv
# =============================================================================


class TestCsvHelpers:
    def test_plain_value_unchanged(self):
        assert csv_safe("plain") == "plain"

    def test_quotes_escaped_and_wrapped(self):
        assert csv_safe('say "hi", ok') == '"say \\"hi\\", ok"'

    def test_other_delimiter(self):
        assert csv_safe("a,b", delimiter=";") == "a,b"
        assert csv_safe("a;b", delimiter=";") == '"a;b"'

    def test_numbers_become_text(self):
        assert csv_safe(10) == "10"

    @pytest.mark.parametrize(
        "value, mode",
        [(True, "on"), (False, "off"), ("true", "on"), ("false", "off"), ("only", "only"), (None, "off")],
    )
    def test_header_mode(self, value, mode):
        assert header_mode(value) == mode


class TestCsvNormalize:
    def test_list_shorthand(self):
        config = CsvAction().normalize(["name", "amount"])
        assert config.fields == ["name", "amount"]
        assert config.header is False

    def test_array_name_shorthand(self):
        assert CsvAction().normalize("columns").fields == "columns"

    def test_mapping(self):
        config = CsvAction().normalize({"fields": ["a"], "header": "only"})
        assert isinstance(config, CsvConfig)
        assert config.header == "only"

    def test_rejects_other_values(self):
        with pytest.raises(ConfigurationError):
            CsvAction().normalize(42)


class TestCsvAction:
    SESSION = {"name": ["Al", "Bo"], "amount": [10, 20]}

    def run(self, spec, session):
        context = make_context(session)
        run_action("csv", spec, context)
        return context.emit.lines

    def test_rows_with_header(self):
        lines = self.run({"fields": ["name", "amount"], "header": True}, dict(self.SESSION))
        assert lines == ["name,amount", "Al,10", "Bo,20"]

    def test_rows_without_header(self):
        assert self.run(["name", "amount"], dict(self.SESSION)) == ["Al,10", "Bo,20"]

    def test_header_only(self):
        lines = self.run({"fields": ["name", "amount"], "header": "only"}, dict(self.SESSION))
        assert lines == ["name,amount"]

    def test_fields_from_session_array(self):
        session = {**self.SESSION, "columns": ["amount", "name"]}
        assert self.run("columns", session) == ["10,Al", "20,Bo"]

    def test_fields_from_raw_token(self):
        session = {**self.SESSION, "cols": ["name"]}
        assert self.run({"fields": "<%! cols %>"}, session) == ["Al", "Bo"]

    def test_fields_name_must_hold_an_array(self):
        with pytest.raises(ConfigurationError):
            self.run("name_of_scalar", {"name_of_scalar": "x"})

    def test_scalar_fields_repeat(self):
        session = {**self.SESSION, "region": "EU"}
        assert self.run(["name", "region"], session) == ["Al,EU", "Bo,EU"]

    def test_shortest_array_wins(self):
        session = {"name": ["Al", "Bo", "Cy"], "amount": [10, 20]}
        assert self.run(["name", "amount"], session) == ["Al,10", "Bo,20"]

    def test_only_scalars_make_one_row(self):
        assert self.run(["region"], {"region": "EU"}) == ["EU"]

    def test_mapping_templates(self):
        spec = {
            "fields": ["name", "amount"],
            "mapping": {"name": "<% name | upcase %>", "amount": "<% amount %> EUR"},
        }
        assert self.run(spec, dict(self.SESSION)) == ["AL,10 EUR", "BO,20 EUR"]

    def test_values_are_escaped(self):
        session = {"note": ['say "hi", ok', "fine"]}
        assert self.run(["note"], session) == ['"say \\"hi\\", ok"', "fine"]

    def test_custom_delimiter(self):
        spec = {"fields": ["name", "amount"], "header": True, "delimiter": ";"}
        assert self.run(spec, dict(self.SESSION)) == ["name;amount", "Al;10", "Bo;20"]

    def test_current_in_mapping_after_direct_field(self):
        spec = {"fields": ["name", "echo"], "mapping": {"echo": "<% name | current %>"}}
        assert self.run(spec, {"name": ["Al", "Bo"]}) == ["Al,Al", "Bo,Bo"]

    def test_current_in_mapping_before_direct_field(self):
        spec = {"fields": ["echo", "name"], "mapping": {"echo": "<% name | current %>"}}
        assert self.run(spec, {"name": ["Al", "Bo"]}) == ["Al,Al", "Bo,Bo"]

    def test_empty_array_field_writes_no_rows(self):
        session = {"name": [], "amount": ["1", "2"]}
        assert self.run(["name", "amount"], session) == []

    def test_empty_array_in_mapping_writes_no_rows(self):
        spec = {"fields": ["amount", "name"], "mapping": {"name": "<% name %>!"}}
        assert self.run(spec, {"name": [], "amount": ["1", "2"]}) == []

    def test_empty_array_keeps_the_header(self):
        spec = {"fields": ["name"], "header": True}
        assert self.run(spec, {"name": []}) == ["name"]

    def test_no_cursors_left_behind(self):
        session = {"name": ["Al", "Bo", "Cy"], "amount": [10]}
        context = make_context(session)
        run_action("csv", ["name", "amount"], context)
        assert len(context.engine.cursors) == 0

    def test_channel(self):
        context = make_context(dict(self.SESSION))
        run_action("csv", {"fields": ["name"], "channel": "report"}, context)
        assert context.emit.calls == [("Al", "report"), ("Bo", "report")]


# =============================================================================
# prompt
# =============================================================================


class TestPromptNormalize:
    def test_description_shorthand(self):
        entries = PromptAction().normalize({"user": "Your name"})
        assert entries == [PromptEntry(name="user", description="Your name")]

    def test_list_form(self):
        entries = PromptAction().normalize([{"name": "a"}, {"name": "b", "required": True}])
        assert [e.name for e in entries] == ["a", "b"]
        assert entries[1].required

    def test_pattern_literal(self):
        (entry,) = PromptAction().normalize({"code": {"pattern": "/ab+c/i"}})
        assert entry.pattern.source == "ab+c"
        assert entry.pattern.flags == "i"

    def test_list_entry_needs_name(self):
        with pytest.raises(ConfigurationError):
            PromptAction().normalize([{"description": "nameless"}])

    def test_rejects_scalars(self):
        with pytest.raises(ConfigurationError):
            PromptAction().normalize("user")


class TestPromptAction:
    def test_stores_answers(self):
        ask = Answers("Al")
        context = make_context({}, ask=ask)
        run_action("prompt", {"user": "Your name"}, context)
        assert context.session["user"] == "Al"
        assert ask.asked == [("Your name", None)]

    def test_existing_values_are_skipped(self):
        ask = Answers()
        context = make_context({"user": "Al"}, ask=ask)
        run_action("prompt", {"user": "Your name"}, context)
        assert ask.asked == []
        assert context.session["user"] == "Al"

    def test_required_asks_anyway(self):
        context = make_context({"user": "Al"}, ask=Answers("Bo"))
        run_action("prompt", {"user": {"description": "Name", "required": True}}, context)
        assert context.session["user"] == "Bo"

    def test_description_is_interpolated(self):
        ask = Answers("7")
        context = make_context({"item": "widget"}, ask=ask)
        run_action("prompt", {"count": "How many <% item %>s?"}, context)
        assert ask.asked[0][0] == "How many widgets?"

    def test_default_on_empty_answer(self):
        ask = Answers("")
        context = make_context({}, ask=ask)
        run_action("prompt", {"region": {"default": "EU"}}, context)
        assert context.session["region"] == "EU"
        assert ask.asked == [("region", "EU")]

    def test_retries_until_pattern_matches(self):
        ask = Answers("nope", "ABBBC")
        context = make_context({}, ask=ask)
        run_action("prompt", {"code": {"pattern": "/^ab+c$/i"}}, context)
        assert context.session["code"] == "ABBBC"
        assert len(ask.asked) == 2

    def test_pattern_tokens_resolve_from_session(self):
        context = make_context({"prefix": "INV"}, ask=Answers("INV-12"))
        run_action("prompt", {"invoice": {"pattern": r"/^<% prefix %>-\d+$/"}}, context)
        assert context.session["invoice"] == "INV-12"

    def test_gives_up_after_attempts(self):
        context = make_context({}, ask=Answers("x", "y"))
        with pytest.raises(InvalidAnswerError) as exc:
            run_action("prompt", {"n": {"pattern": r"^\d+$", "attempts": 2}}, context)
        assert exc.value.attempts == 2
        assert "n" not in context.session

    def test_bad_pattern_fails_before_asking(self):
        ask = Answers()
        context = make_context({}, ask=ask)
        spec = {"a": "First", "b": {"pattern": "/(unclosed/"}}
        with pytest.raises(PatternCompileError):
            run_action("prompt", spec, context)
        assert ask.asked == []


# =============================================================================
# emit / run_actions
# =============================================================================


class TestEmitAction:
    def test_string_shorthand(self):
        context = make_context({"name": "Al"})
        run_action("emit", "Hello <% name %>", context)
        assert context.emit.calls == [("Hello Al", None)]

    def test_mapping_with_channel(self):
        context = make_context({"n": 3})
        run_action("emit", {"message": "<% n %>", "channel": "stderr"}, context)
        assert context.emit.calls == [("3", "stderr")]

    def test_normalize(self):
        assert EmitAction().normalize("hi").message == "hi"


class TestRunActions:
    def test_actions_share_the_session(self):
        context = make_context({}, ask=Answers("Al"))
        run_actions(
            [{"prompt": {"user": "Name"}}, {"emit": "Hi <% user %>", "channel": "out"}],
            context,
        )
        assert context.emit.calls == [("Hi Al", "out")]

    def test_item_channel_is_the_default_for_its_action(self):
        context = make_context({"name": ["Al"]})
        run_actions([{"csv": ["name"], "channel": "file"}], context)
        assert context.emit.calls == [("Al", "file")]

    def test_item_must_name_one_action(self):
        with pytest.raises(ConfigurationError):
            run_actions([{"emit": "a", "csv": ["b"]}], make_context({}))

    def test_item_must_be_a_mapping(self):
        with pytest.raises(ConfigurationError):
            run_actions(["emit"], make_context({}))

    def test_unknown_action(self):
        with pytest.raises(UnknownActionError):
            run_actions([{"mail": "x"}], make_context({}))
