from __future__ import annotations

import random
import re
import unittest
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

from htmlscrub import DEFAULT_POLICY, SanitizationPolicy, Sanitizer, UrlRule, clean, iter_events
from htmlscrub.constants import URL_ATTRIBUTES, VOID_ELEMENTS
from htmlscrub.tokens import StartTag

import fuzz

_TAG_RE = re.compile(r"<(/?)([a-z][a-z0-9]*)")

SAMPLES = [
    "<bogus><b>hi</b></bogus>",
    "<script>alert(1)</script>safe",
    '<a href="javascript:alert(1)">x</a>',
    "<p>1 < 2 & 3</p>",
    '<a href="https://x" target="_blank">x</a>',
    "<b>AWESOME!",
    "<table><tr><td>x</td></tr></table>",
    "<pre>\n\nx</pre>",
    "<ul><li>one<li>two</ul>",
    '<p title="&quot;quoted&quot;">q</p>',
    "<div><p>a<div>b</p></div>",
    '<noscript><p title="</noscript><img src=x onerror=alert(1)>">',
    "<svg><script>alert(1)</script></svg>ok",
    "<b><i>bold italic</b> italic</i>",
    "a<!-- comment -->b",
    "<textarea>\nx</textarea>",
    "<p><button><div>x</div></button></p>",
    '<a href="http://a"><object><a href="http://b">x</a></object></a>',
    "<li><object><li>x</li></object></li>",
]


def _assert_no_executable_content(output: str) -> None:
    for event in iter_events(output):
        if isinstance(event, StartTag):
            assert event.name not in {"script", "style", "iframe", "object", "embed"}, output
            for name, value in event.attrs:
                assert not name.startswith("on"), output
                assert name != "style", output
                if name in URL_ATTRIBUTES:
                    assert "javascript" not in value.lower().replace("\t", ""), output


def _assert_balanced(output: str) -> None:
    # Text and attribute values escape "<", so every literal "<" opens a tag.
    names: list[str] = []
    for closing, name in _TAG_RE.findall(output):
        if closing:
            assert names and names.pop() == name, output
        elif name not in VOID_ELEMENTS:
            names.append(name)
    assert names == [], output


class TestCleanDefaults(unittest.TestCase):
    def test_unknown_tag_is_unwrapped(self) -> None:
        assert clean("<bogus><b>hi</b></bogus>") == "<b>hi</b>"

    def test_script_is_removed_with_content(self) -> None:
        assert clean("<script>alert(1)</script>safe") == "safe"
        assert clean("an <script>evil()</script> example") == "an  example"

    def test_style_is_removed_with_content(self) -> None:
        assert clean("<style>p { color: red }</style>ok") == "ok"

    def test_markup_inside_script_never_survives(self) -> None:
        assert clean("<div><script><b>x</b></script></div>") == "<div></div>"

    def test_javascript_href_is_dropped(self) -> None:
        assert clean('<a href="javascript:alert(1)">x</a>') == "<a>x</a>"
        assert clean('<a href="jav&#x09;ascript:alert(1)">x</a>') == "<a>x</a>"
        assert clean('<a href="  JaVaScRiPt:alert(1)">x</a>') == "<a>x</a>"

    def test_event_handlers_are_dropped(self) -> None:
        html = 'an <a onclick="evil()" href="http://www.google.com">evil</a> example'
        assert clean(html) == 'an <a href="http://www.google.com">evil</a> example'

    def test_text_is_escaped(self) -> None:
        assert clean("<p>1 < 2 & 3</p>") == "<p>1 &lt; 2 &amp; 3</p>"

    def test_attribute_values_are_escaped(self) -> None:
        assert clean('<p title="&quot;a&quot; &lt;b&gt;">q</p>') == '<p title="&quot;a&quot; &lt;b&gt;">q</p>'

    def test_empty_attribute_value_is_minimized(self) -> None:
        assert clean('<a title="">x</a>') == "<a title>x</a>"

    def test_links_with_target_get_rel(self) -> None:
        html = '<a href="https://x" target="_blank">x</a>'
        assert clean(html) == '<a href="https://x" target="_blank" rel="noopener noreferrer">x</a>'

    def test_links_without_target_are_left_alone(self) -> None:
        assert clean('<a href="https://x">x</a>') == '<a href="https://x">x</a>'

    def test_unclosed_tags_are_closed(self) -> None:
        assert clean("<b>AWESOME!") == "<b>AWESOME!</b>"
        assert clean("<ul><li>one<li>two</ul>") == "<ul><li>one</li><li>two</li></ul>"

    def test_stray_end_tags_are_dropped(self) -> None:
        assert clean("a</b>b</div>c") == "abc"

    def test_names_are_lowercased(self) -> None:
        assert clean('<B TITLE="t">x</B>') == '<b title="t">x</b>'

    def test_comments_are_dropped(self) -> None:
        assert clean("a<!-- comment -->b") == "ab"
        assert clean("a<!--[if IE]><script>x</script><![endif]-->b") == "ab"

    def test_table_gets_implied_tbody(self) -> None:
        assert clean("<table><tr><td>x</td></tr></table>") == "<table><tbody><tr><td>x</td></tr></tbody></table>"

    def test_pre_keeps_leading_newline(self) -> None:
        assert clean("<pre>\n\nx</pre>") == "<pre>\n\nx</pre>"
        assert clean("<pre>\nx</pre>") == "<pre>x</pre>"

    def test_void_elements(self) -> None:
        assert clean("a<br>b<hr/>c") == "a<br>b<hr>c"
        assert clean('<img src="https://x/a.png" onerror="alert(1)">') == '<img src="https://x/a.png">'

    def test_forms_are_unwrapped(self) -> None:
        assert clean('<form action="/x"><input name="q">go</form>') == "go"

    def test_foreign_content_is_discarded(self) -> None:
        assert clean("<svg><script>alert(1)</script></svg>ok") == "ok"
        assert clean("<math><mi>x</mi></math>ok") == "ok"

    def test_noscript_title_stays_inert(self) -> None:
        output = clean('<noscript><p title="</noscript><img src=x onerror=alert(1)>">')
        assert "<img" not in output
        assert output == '<p title="&lt;/noscript&gt;&lt;img src=x onerror=alert(1)&gt;"></p>'

    def test_empty_input(self) -> None:
        assert clean("") == ""
        assert clean(None) == ""

    def test_bytes_input_is_decoded_as_utf8(self) -> None:
        assert clean("<b>é</b>".encode()) == "<b>é</b>"
        assert clean(b"<b>\xff</b>") == "<b>�</b>"

    def test_non_text_input_is_rejected(self) -> None:
        with self.assertRaises(TypeError):
            clean(42)  # type: ignore[arg-type]

    def test_deep_nesting(self) -> None:
        depth = 1000
        output = clean("<div>" * depth + "x")
        assert output == "<div>" * depth + "x" + "</div>" * depth


class TestCleanWithPolicy(unittest.TestCase):
    def test_escape_disallowed_tags(self) -> None:
        policy = replace(DEFAULT_POLICY, escape_disallowed_tags=True)
        output = clean('<font size="20">LARGE</font>', policy=policy)
        assert output == '&lt;font size="20"&gt;LARGE&lt;/font&gt;'

    def test_escape_mode_still_discards_script(self) -> None:
        policy = replace(DEFAULT_POLICY, escape_disallowed_tags=True)
        assert clean("<script>x</script><b>y</b>", policy=policy) == "<b>y</b>"

    def test_escape_mode_closes_escaped_tags(self) -> None:
        policy = replace(DEFAULT_POLICY, escape_disallowed_tags=True)
        assert clean("<font>x", policy=policy) == "&lt;font&gt;x&lt;/font&gt;"

    def test_strip_disabled_discards_subtree(self) -> None:
        policy = replace(DEFAULT_POLICY, strip_disallowed_tags=False)
        assert clean("<font><b>gone</b></font>kept", policy=policy) == "kept"

    def test_custom_allowlist(self) -> None:
        policy = SanitizationPolicy(allowed_tags=["p"], allowed_attributes={})
        assert clean('<p title="x"><b>bold</b></p>', policy=policy) == "<p>bold</p>"

    def test_class_allowlist(self) -> None:
        policy = SanitizationPolicy(
            allowed_tags=["p"],
            allowed_attributes={"p": ["class"]},
            allowed_classes=["a", "b"],
        )
        assert clean('<p class="a  evil b">x</p>', policy=policy) == '<p class="a b">x</p>'
        assert clean('<p class="evil">x</p>', policy=policy) == "<p>x</p>"

    def test_set_tag_attributes(self) -> None:
        policy = replace(DEFAULT_POLICY, set_tag_attributes={"img": {"loading": "lazy"}})
        output = clean('<img src="https://x/a.png" loading="eager">', policy=policy)
        assert output == '<img src="https://x/a.png" loading="lazy">'

    def test_existing_rel_is_merged(self) -> None:
        attributes = {**DEFAULT_POLICY.allowed_attributes, "a": {"href", "rel", "target"}}
        policy = replace(DEFAULT_POLICY, allowed_attributes=attributes)
        output = clean('<a rel="nofollow" target="_blank">x</a>', policy=policy)
        assert output == '<a rel="nofollow noopener noreferrer" target="_blank">x</a>'

    def test_force_rel_disabled(self) -> None:
        policy = replace(DEFAULT_POLICY, force_link_rel=set())
        assert clean('<a target="_blank">x</a>', policy=policy) == '<a target="_blank">x</a>'

    def test_per_tag_url_rule(self) -> None:
        policy = replace(
            DEFAULT_POLICY,
            url_rules={("img", "src"): UrlRule(allowed_schemes=["https"], allowed_hosts=["cdn.example"])},
        )
        assert clean('<img src="https://cdn.example/a.png">', policy=policy) == '<img src="https://cdn.example/a.png">'
        assert clean('<img src="https://evil.test/a.png">', policy=policy) == "<img>"
        assert clean('<img src="http://cdn.example/a.png">', policy=policy) == "<img>"

    def test_url_filter(self) -> None:
        policy = replace(DEFAULT_POLICY, url_filter=lambda tag, attr, value: value.replace("http:", "https:"))
        assert clean('<a href="http://x">x</a>', policy=policy) == '<a href="https://x">x</a>'

    def test_sanitizer_instance(self) -> None:
        sanitizer = Sanitizer(SanitizationPolicy(allowed_tags=["i"], allowed_attributes={}))
        assert sanitizer.clean("<b><i>x</i></b>") == "<i>x</i>"

    def test_sanitizer_rejects_bad_arguments(self) -> None:
        with self.assertRaises(TypeError):
            Sanitizer({"allowed_tags": []})  # type: ignore[arg-type]
        with self.assertRaises(ValueError):
            Sanitizer(max_input_length=-1)


class TestImpliedEndTags(unittest.TestCase):
    """Unwrapping must not leave nestings a re-parse would rearrange."""

    def _assert_stable(self, html: str, expected: str, policy: SanitizationPolicy = DEFAULT_POLICY) -> None:
        output = clean(html, policy=policy)
        assert output == expected
        assert clean(output, policy=policy) == output

    def test_block_inside_unwrapped_button_closes_paragraph(self) -> None:
        self._assert_stable("<p><button><div>x</div></button></p>", "<p></p><div>x</div>")

    def test_link_inside_unwrapped_object_closes_link(self) -> None:
        self._assert_stable(
            '<a href="http://a"><object><a href="http://b">x</a></object></a>',
            '<a href="http://a"></a><a href="http://b">x</a>',
        )

    def test_list_item_inside_unwrapped_object_closes_list_item(self) -> None:
        self._assert_stable("<li><object><li>x</li></object></li>", "<li></li><li>x</li>")

    def test_formatting_inside_closed_paragraph_is_closed_too(self) -> None:
        self._assert_stable("<p><b>a<button><div>x</div>y</button></b></p>", "<p><b>a</b></p><div>x</div>y")

    def test_horizontal_rule_closes_paragraph(self) -> None:
        self._assert_stable("<p>a<object><hr>b</object></p>", "<p>a</p><hr>b")

    def test_escaped_button_is_transparent(self) -> None:
        policy = replace(DEFAULT_POLICY, escape_disallowed_tags=True)
        self._assert_stable(
            "<p><button><div>x</div></button></p>",
            "<p>&lt;button&gt;</p><div>x</div>&lt;/button&gt;",
            policy,
        )

    def test_nested_list_is_left_alone(self) -> None:
        self._assert_stable("<ul><li>a<ul><li>b</li></ul></li></ul>", "<ul><li>a<ul><li>b</li></ul></li></ul>")

    def test_table_parts_without_their_table_are_unwrapped(self) -> None:
        policy = SanitizationPolicy(allowed_tags=["tbody", "tr", "td"], allowed_attributes={})
        self._assert_stable("<table><tr><td>x</td></tr></table>", "x", policy)

    def test_text_directly_in_table_is_dropped(self) -> None:
        policy = SanitizationPolicy(allowed_tags=["table"], allowed_attributes={})
        self._assert_stable("<table><caption>x</caption></table>", "<table></table>", policy)

    def test_escape_mode_unwraps_inside_table(self) -> None:
        policy = replace(DEFAULT_POLICY, escape_disallowed_tags=True)
        self._assert_stable(
            '<table><input type="hidden"><tr><td>x</td></tr></table>',
            "<table><tbody><tr><td>x</td></tr></tbody></table>",
            policy,
        )


class TestCleanProperties(unittest.TestCase):
    def test_idempotent(self) -> None:
        for html in SAMPLES:
            once = clean(html)
            assert clean(once) == once, html

    def test_no_executable_content(self) -> None:
        for html in SAMPLES:
            _assert_no_executable_content(clean(html))

    def test_output_is_balanced(self) -> None:
        for html in SAMPLES:
            _assert_balanced(clean(html))

    def test_concurrent_calls_are_independent(self) -> None:
        expected = [clean(html) for html in SAMPLES]
        policy = replace(DEFAULT_POLICY, escape_disallowed_tags=True)
        escaped = [clean(html, policy=policy) for html in SAMPLES]

        def run(index: int) -> tuple[str, str]:
            html = SAMPLES[index % len(SAMPLES)]
            return clean(html), clean(html, policy=policy)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(run, range(len(SAMPLES) * 8)))

        for index, (plain, escaped_output) in enumerate(results):
            assert plain == expected[index % len(SAMPLES)]
            assert escaped_output == escaped[index % len(SAMPLES)]


class TestGeneratedInputs(unittest.TestCase):
    """The fuzz.py properties over a fixed, seeded batch of hostile inputs."""

    CASES = 2000

    def _generate(self, seed: int) -> list[str]:
        state = random.getstate()
        random.seed(seed)
        try:
            return [fuzz.generate_fuzzed_html() for _ in range(self.CASES)]
        finally:
            random.setstate(state)

    def _assert_properties(self, policy: SanitizationPolicy, seed: int) -> None:
        for html in self._generate(seed):
            output = clean(html, policy=policy)
            problems = fuzz.check_output(output, policy)
            assert problems == [], (html, output, problems)

    def test_strip_mode(self) -> None:
        self._assert_properties(DEFAULT_POLICY, seed=1)

    def test_escape_mode(self) -> None:
        self._assert_properties(replace(DEFAULT_POLICY, escape_disallowed_tags=True), seed=2)


if __name__ == "__main__":
    unittest.main()
