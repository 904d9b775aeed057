#!/usr/bin/env python3
"""
Random fuzzer for the htmlscrub sanitizer.
Generates hostile and malformed HTML and checks the sanitizer's guarantees
on every output: no crash, no executable content, balanced tags and a
stable re-sanitization.
"""

import argparse
import random
import re
import string
import sys
import time
import traceback
from dataclasses import replace

from htmlscrub import DEFAULT_POLICY, clean, iter_events
from htmlscrub.constants import URL_ATTRIBUTES, VOID_ELEMENTS
from htmlscrub.tokens import StartTag

TAGS = [
    "div", "span", "p", "a", "img", "table", "tr", "td", "ul", "li", "b", "i",
    "pre", "textarea", "listing", "code", "blockquote", "font", "form", "input",
    "button", "select", "option", "iframe", "object", "embed", "video", "svg",
    "math", "template", "noscript", "noembed", "xmp", "title", "style", "script",
    "base", "meta", "link", "frameset", "plaintext", "bogus", "x-custom",
]

RAW_TEXT_TAGS = ["script", "style", "xmp", "iframe", "noembed", "noframes", "noscript", "textarea", "title"]

ATTRIBUTES = [
    "href", "src", "srcset", "action", "formaction", "poster", "cite", "background",
    "xlink:href", "title", "alt", "class", "style", "target", "rel", "lang",
    "onclick", "onerror", "onload", "onmouseover", "data-x",
]

SCHEMES = [
    "javascript", "JaVaScRiPt", "jav\tascript", "java\nscript", " javascript",
    "\x01javascript", "jav&#x09;ascript", "jav&#9;ascript", "&#106;avascript",
    "vbscript", "data", "livescript", "https", "http", "mailto",
]

URL_PAYLOADS = [
    "alert(1)", "//evil.test/x", "text/html;base64,PHNjcmlwdD5hbGVydCgxKTwvc2NyaXB0Pg==",
    "example.com", "%0aalert(1)",
]

BREAKOUTS = [
    "</noscript><img src=x onerror=alert(1)>",
    "</title><script>alert(1)</script>",
    "</textarea><svg onload=alert(1)>",
    "\"><img src=x onerror=alert(1)>",
    "'><script>alert(1)</script>",
    "--><script>alert(1)</script>",
    "]]><script>alert(1)</script>",
]


def random_string(min_len=0, max_len=20):
    length = random.randint(min_len, max_len)
    return "".join(random.choices(string.ascii_letters + string.digits, k=length))


def fuzz_url():
    """Generate a URL, usually one that should be rejected."""
    if random.random() < 0.2:
        return "/" + random_string(1, 10)
    return f"{random.choice(SCHEMES)}:{random.choice(URL_PAYLOADS)}"


def fuzz_attribute():
    name = random.choice(ATTRIBUTES)
    if name.startswith("on"):
        value = "alert(1)"
    elif name in ("href", "src", "action", "formaction", "poster", "background", "xlink:href"):
        value = fuzz_url()
    elif name == "srcset":
        value = ", ".join(f"{fuzz_url()} {i + 1}x" for i in range(random.randint(1, 3)))
    elif name == "style":
        value = "background:url(javascript:alert(1))"
    else:
        value = random.choice([random_string(), random.choice(BREAKOUTS), ""])

    quote = random.choice(['"', "'", ""])
    if not quote:
        value = value.replace(" ", "").replace(">", "")
    return f"{name}={quote}{value}{quote}"


def fuzz_open_tag():
    tag = random.choice(TAGS)
    if random.random() < 0.2:
        tag = tag.upper()
    attrs = " ".join(fuzz_attribute() for _ in range(random.randint(0, 4)))
    closing = random.choice([">", "/>", " >"])
    return f"<{tag} {attrs}{closing}" if attrs else f"<{tag}{closing}"


def fuzz_close_tag():
    return f"</{random.choice(TAGS)}>"


def fuzz_text():
    strategies = [
        lambda: random_string(1, 30),
        lambda: "1 < 2 & 3 > 0",
        lambda: "&lt;script&gt;alert(1)&lt;/script&gt;",
        lambda: "\n" + random_string(1, 5),
        lambda: random.choice(BREAKOUTS),
        lambda: "\x00" * random.randint(1, 3),
    ]
    return random.choice(strategies)()


def fuzz_comment():
    content = random.choice([random_string(0, 20), "[if IE]><script>alert(1)</script><![endif]", "--!>"])
    return f"<!--{content}-->"


def fuzz_raw_text():
    """Raw text elements with markup that must never come back as markup."""
    tag = random.choice(RAW_TEXT_TAGS)
    return f"<{tag}>{random.choice(BREAKOUTS)}</{tag}>"


def fuzz_foreign():
    variants = [
        "<svg><script>alert(1)</script></svg>",
        "<svg><a xlink:href='javascript:alert(1)'>x</a></svg>",
        "<svg><foreignObject><img src=x onerror=alert(1)></foreignObject></svg>",
        "<math><mtext><table><mglyph><style><img src=x onerror=alert(1)>",
        "<svg></p><style><a title=\"</style><img src onerror=alert(1)>\">",
    ]
    return random.choice(variants)


def fuzz_nested_structure(depth=0, max_depth=8):
    if depth >= max_depth or random.random() < 0.3:
        return fuzz_text()

    tag = random.choice(TAGS)
    content = "".join(fuzz_nested_structure(depth + 1, max_depth) for _ in range(random.randint(0, 3)))
    if random.random() < 0.2:
        return f"<{tag}>{content}"
    if random.random() < 0.1:
        return f"<{tag}>{content}</{random.choice(TAGS)}>"
    return f"<{tag}>{content}</{tag}>"


def fuzz_deeply_nested():
    depth = random.randint(50, 300)
    tag = random.choice(["div", "span", "b", "bogus", "script"])
    return f"<{tag}>" * depth + "x" + f"</{tag}>" * (depth // random.randint(1, 3))


def generate_fuzzed_html():
    parts = []
    for _ in range(random.randint(1, 15)):
        generator = random.choices(
            [
                fuzz_open_tag,
                fuzz_close_tag,
                fuzz_text,
                fuzz_comment,
                fuzz_raw_text,
                fuzz_foreign,
                fuzz_nested_structure,
                fuzz_deeply_nested,
            ],
            weights=[25, 10, 15, 5, 8, 6, 10, 1],
        )[0]
        parts.append(generator())
    return "".join(parts)


_TAG_RE = re.compile(r"<(/?)([a-z][a-z0-9]*)")
_FORBIDDEN_TAGS = {"script", "style", "iframe", "object", "embed", "base", "meta", "link", "svg", "math"}


def check_output(output, policy):
    """Return a list of violated properties for one sanitized output."""
    problems = []

    for event in iter_events(output):
        if not isinstance(event, StartTag):
            continue
        if event.name in _FORBIDDEN_TAGS:
            problems.append(f"forbidden tag <{event.name}>")
        for name, value in event.attrs:
            if name.startswith("on") or name == "style":
                problems.append(f"forbidden attribute {name} on <{event.name}>")
            elif name in URL_ATTRIBUTES:
                compact = re.sub(r"[\x00-\x20\x7f]", "", value).lower()
                if compact.startswith(("javascript:", "vbscript:", "data:")):
                    problems.append(f"executable URL {value!r} on <{event.name}>")

    names = []
    for closing, name in _TAG_RE.findall(output):
        if closing:
            if not names or names.pop() != name:
                problems.append(f"unbalanced </{name}>")
                break
        elif name not in VOID_ELEMENTS:
            names.append(name)
    if names:
        problems.append(f"unclosed tags {names[:5]}")

    again = clean(output, policy=policy)
    if again != output:
        problems.append("not idempotent")

    return problems


def run_fuzzer(num_tests, seed=None, escape=False, verbose=False, save_failures=False):
    """Run the fuzzer against the sanitizer."""
    if seed is not None:
        random.seed(seed)

    policy = replace(DEFAULT_POLICY, escape_disallowed_tags=True) if escape else DEFAULT_POLICY
    mode = "escape" if escape else "strip"

    crashes = []
    violations = []
    hangs = []

    print(f"Fuzzing htmlscrub ({mode} mode) with {num_tests} test cases...")
    start_time = time.time()

    for i in range(num_tests):
        html = generate_fuzzed_html()

        if verbose and i % 100 == 0:
            print(f"  Test {i}/{num_tests}...")

        try:
            start = time.perf_counter()
            output = clean(html, policy=policy)
            elapsed = time.perf_counter() - start
            problems = check_output(output, policy)
        except Exception as e:
            crashes.append({"test_num": i, "html": html, "error": str(e), "traceback": traceback.format_exc()})
            if verbose:
                print(f"  CRASH: Test {i}: {e}")
            continue

        if elapsed > 5.0:
            hangs.append({"test_num": i, "html": html, "time": elapsed})
        if problems:
            violations.append({"test_num": i, "html": html, "output": output, "problems": problems})
            if verbose:
                print(f"  VIOLATION: Test {i}: {', '.join(problems)}")

    elapsed_total = time.time() - start_time

    print(f"\n{'=' * 60}")
    print(f"FUZZING RESULTS: htmlscrub ({mode} mode)")
    print(f"{'=' * 60}")
    print(f"Total tests:    {num_tests}")
    print(f"Crashes:        {len(crashes)}")
    print(f"Violations:     {len(violations)}")
    print(f"Hangs (>5s):    {len(hangs)}")
    print(f"Total time:     {elapsed_total:.2f}s")
    print(f"Tests/second:   {num_tests / elapsed_total:.1f}")

    for crash in crashes[:10]:
        print(f"\nCRASH #{crash['test_num']}:")
        print(f"  HTML: {crash['html'][:200]!r}")
        print(f"  Error: {crash['error']}")
    for violation in violations[:10]:
        print(f"\nVIOLATION #{violation['test_num']}: {', '.join(violation['problems'])}")
        print(f"  HTML:   {violation['html'][:200]!r}")
        print(f"  Output: {violation['output'][:200]!r}")

    if save_failures and (crashes or violations or hangs):
        filename = f"fuzz_failures_{mode}_{int(time.time())}.txt"
        with open(filename, "w", encoding="utf-8") as f:
            f.write(f"Fuzzing results for htmlscrub ({mode} mode)\n")
            f.write(f"Seed: {seed}\n\n")
            for crash in crashes:
                f.write(f"=== CRASH #{crash['test_num']} ===\n")
                f.write(f"HTML:\n{crash['html']}\n")
                f.write(f"Traceback:\n{crash['traceback']}\n\n")
            for violation in violations:
                f.write(f"=== VIOLATION #{violation['test_num']} ===\n")
                f.write(f"Problems: {', '.join(violation['problems'])}\n")
                f.write(f"HTML:\n{violation['html']}\n")
                f.write(f"Output:\n{violation['output']}\n\n")
            for hang in hangs:
                f.write(f"=== HANG #{hang['test_num']} ({hang['time']:.2f}s) ===\n")
                f.write(f"HTML:\n{hang['html']}\n\n")
        print(f"\nFailures saved to {filename}")

    return not crashes and not violations and not hangs


def main():
    parser = argparse.ArgumentParser(description="Fuzz the htmlscrub sanitizer with hostile input")
    parser.add_argument("--num-tests", "-n", type=int, default=1000, help="Number of test cases (default: 1000)")
    parser.add_argument("--seed", "-s", type=int, default=None, help="Random seed for reproducibility")
    parser.add_argument("--escape", action="store_true", help="Fuzz with escape_disallowed_tags enabled")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--save-failures", action="store_true", help="Save failures to a file")
    parser.add_argument("--sample", type=int, metavar="N", help="Just print N sample inputs (no sanitizing)")

    args = parser.parse_args()

    if args.sample:
        if args.seed is not None:
            random.seed(args.seed)
        for i in range(args.sample):
            print(f"=== Sample {i + 1} ===")
            print(generate_fuzzed_html())
            print()
        return

    success = run_fuzzer(
        args.num_tests,
        seed=args.seed,
        escape=args.escape,
        verbose=args.verbose,
        save_failures=args.save_failures,
    )
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
