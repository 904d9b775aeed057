class StartTag:
    __slots__ = ("attrs", "name", "namespace", "void")

    def __init__(self, name, attrs=None, namespace=None, void=False):
        self.name = name
        # Ordered (name, value) pairs, as delivered by the tokenizer.
        self.attrs = attrs if attrs is not None else []
        self.namespace = namespace
        self.void = bool(void)

    def __repr__(self):
        if self.attrs:
            attrs = " " + " ".join(f"{name}={value!r}" for name, value in self.attrs)
        else:
            attrs = ""
        closing = " /" if self.void else ""
        return f"<start:{self.name}{attrs}{closing}>"


class EndTag:
    __slots__ = ("name", "namespace")

    def __init__(self, name, namespace=None):
        self.name = name
        self.namespace = namespace

    def __repr__(self):
        return f"<end:{self.name}>"


class Characters:
    __slots__ = ("data",)

    def __init__(self, data):
        self.data = data

    def __repr__(self):
        return f"<text:{self.data!r}>"


class Comment:
    __slots__ = ("data",)

    def __init__(self, data):
        self.data = data


class Doctype:
    __slots__ = ("name",)

    def __init__(self, name=None):
        self.name = name


class Removal:
    """Records one thing the sanitizer removed or rewrote."""

    __slots__ = ("attr", "code", "message", "tag")

    def __init__(self, code, tag=None, attr=None, message=None):
        self.code = code
        self.tag = tag
        self.attr = attr
        self.message = message or code

    def __repr__(self):
        where = self.tag or ""
        if self.attr:
            where = f"{where}[{self.attr}]"
        if where:
            return f"Removal({self.code!r}, {where})"
        return f"Removal({self.code!r})"

    def __str__(self):
        parts = [self.code]
        if self.tag:
            parts.append(f"<{self.tag}>")
        if self.attr:
            parts.append(self.attr)
        if self.message != self.code:
            return " ".join(parts) + f" - {self.message}"
        return " ".join(parts)

    def __eq__(self, other):
        if not isinstance(other, Removal):
            return NotImplemented
        return self.code == other.code and self.tag == other.tag and self.attr == other.attr

    __hash__ = None  # Unhashable since we define __eq__
