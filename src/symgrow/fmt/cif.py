import logging
from pathlib import Path
import re

LOG = logging.getLogger(__name__)
NUM_ERR_REGEX = re.compile(r"([-+]?(\d+([.,]\d*)?|[.,]\d+)([eE][-+]?\d+)?)(\(\d+\))?")
QUOTE_REGEX = r"{0}\s*([^{0}]*)\s*{0}"
VALUES_REGEX = re.compile(r"""('.*?'(?=\s|$)|".*?"(?=\s|$)|\S+)""")


def parse_value(string, with_uncertainty=False):
    """parse a value from a cif file to its appropriate type
    e.g. int, float, str etc. Will handle uncertainty values
    contained in parentheses, scaled to the precision of the value.

    Parameters
    ----------
    string: str
        the string containing the value to parse

    with_uncertainty: bool, optional
        return a tuple including the uncertainty (None if there is none)

    Returns
    -------
    value
        the value coerced into the appropriate type

    >>> parse_value("2.34(12)", with_uncertainty=True)
    (2.34, 0.12)
    >>> parse_value("string help")
    'string help'
    >>> parse_value("'-x, y+1/2, -z'")
    '-x, y+1/2, -z'
    """
    string = string.strip()
    match = NUM_ERR_REGEX.match(string)
    if match and match.span()[1] == len(string):
        number_str, mantissa, _, exponent, uncertainty = match.groups()
        mantissa = mantissa.replace(",", ".")
        number = float(number_str.replace(",", "."))
        if number.is_integer() and "." not in mantissa and not exponent:
            number = int(number)
        if not with_uncertainty:
            return number
        su = None
        if uncertainty:
            n_decimals = len(mantissa.split(".")[1]) if "." in mantissa else 0
            su = int(uncertainty.strip("()")) / 10**n_decimals
            if exponent:
                su *= 10 ** int(exponent[1:])
        return number, su
    if string and string[0] == string[-1] and string[0] in ("'", ";", '"'):
        string = parse_quote(string, delimiter=string[0])
    if with_uncertainty:
        return string, None
    return string


def parse_quote(string, delimiter=";"):
    """extract a value contained within quotes, with an optional change
    of delimiter

    Parameters
    ----------
    string: str
        the string containing the value to parse

    delimiter: bool, optional
        the quote delimiter, default ';'

    Returns
    -------
    value
        the string contained inside the quotes

    >>> parse_quote(";quote text;")
    'quote text'
    >>> parse_quote("'-y, x-y, z'", delimiter="'")
    '-y, x-y, z'
    """
    regex = QUOTE_REGEX.format(delimiter)
    match = re.match(regex, string)
    if match:
        return match.groups()[0].strip()
    return string


def normalize_data_name(name):
    "DDLm style names (_atom_site.label) are stored as _atom_site_label"
    return name.replace(".", "_")


class Cif:
    """Class to represent data extracted from a CIF
    standard file format.

    Parameters
    ----------
    cif_data : dict
        dictionary of data block names to dictionaries of CIF keys and values

    Attributes
    ----------
    data : dict
        parsed values, loops are stored as lists
    uncertainties : dict
        standard uncertainties with the same layout as `data`, None where
        a value had no uncertainty
    """

    def __init__(self, cif_data):
        self.data = cif_data
        self.uncertainties = {}
        self.line_dispatch = {
            "#": self.parse_comment_line,
            "loop_": self.parse_loop_block,
        }
        self.current_data_block_name = "unknown"
        self.content_lines = []
        self.line_index = 0

    def is_comment_line(self, line):
        "check if the line is a comment i.e. starts with '#'"
        return line.strip().startswith("#")

    def is_data_name_line(self, line):
        "check if the line is a data_name i.e. starts with a single '_'"
        return line.strip().startswith("_")

    def is_empty_line(self, line):
        "check if the line is empty/blank"
        return not (line and line.strip())

    def is_data_line(self, line):
        "check if the line contains values for the current key or loop"
        if self.is_empty_line(line):
            return False
        if self.is_comment_line(line):
            return False
        if self.is_data_name_line(line):
            return False
        token = line.split()[0]
        if token in self.line_dispatch or token.startswith("data_"):
            return False
        return True

    def parse_text_field(self):
        "parse a multi line text field delimited by lines starting with ';'"
        LOG.debug("Parsing text field at line %d", self.line_index)
        start = self.line_index
        first = self.content_lines[start].strip()[1:]
        parts = [first] if first else []
        j = start + 1
        while j < len(self.content_lines):
            line = self.content_lines[j]
            if line.startswith(";"):
                self.line_index = j + 1
                return "\n".join(parts).strip()
            parts.append(line.rstrip())
            j += 1
        raise ValueError(f"Unmatched text field starting on line {start + 1}")

    def store(self, key, raw_value):
        value, su = parse_value(raw_value, with_uncertainty=True)
        self.current_data_block[key] = value
        self.current_uncertainties[key] = su

    def parse_data_name(self):
        "parse a single data name i.e key for the cif_data dictionary"
        tokens = self.content_lines[self.line_index].strip()[1:].split(maxsplit=1)
        k = normalize_data_name(tokens[0])
        if len(tokens) > 1:
            self.line_index += 1
            self.store(k, tokens[1])
            LOG.debug("Parsed data name: %s = %s", k, tokens[1])
            return
        self.line_index += 1
        while self.line_index < len(self.content_lines) and self.is_comment_line(
            self.content_lines[self.line_index]
        ):
            self.line_index += 1
        if self.line_index >= len(self.content_lines):
            raise ValueError(f"Missing value for CIF data name {k} at end of file")
        next_line = self.content_lines[self.line_index]
        if next_line.startswith(";"):
            value = self.parse_text_field()
            self.current_data_block[k] = value
            self.current_uncertainties[k] = None
        else:
            self.store(k, next_line.strip())
            self.line_index += 1
        LOG.debug("Parsed data name: %s", k)

    def parse_loop_block(self):
        "parse values contained in a loop_ block, rows may wrap over lines"
        LOG.debug("Parsing loop block at line %d", self.line_index)
        self.line_index += 1
        keys = []
        while self.line_index < len(self.content_lines) and self.is_data_name_line(
            self.content_lines[self.line_index]
        ):
            keys.append(normalize_data_name(self.content_lines[self.line_index].strip()[1:]))
            self.line_index += 1

        values = []
        while self.line_index < len(self.content_lines):
            line = self.content_lines[self.line_index]
            if line.startswith(";"):
                values.append(self.parse_text_field())
                continue
            if self.is_comment_line(line):
                self.line_index += 1
                continue
            if not self.is_data_line(line):
                break
            values.extend(VALUES_REGEX.findall(line.strip()))
            self.line_index += 1

        if not keys:
            raise ValueError(f"loop_ without data names before line {self.line_index + 1}")
        if len(values) % len(keys) != 0:
            raise ValueError(
                f"Loop with {len(keys)} data names ({keys[0]}, ...) has "
                f"{len(values)} values, which is not a whole number of rows"
            )
        for k in keys:
            self.current_data_block[k] = []
            self.current_uncertainties[k] = []
        for i, raw in enumerate(values):
            k = keys[i % len(keys)]
            value, su = parse_value(raw, with_uncertainty=True)
            self.current_data_block[k].append(value)
            self.current_uncertainties[k].append(su)
        LOG.debug("Parsed loop block with %d rows", len(values) // len(keys))

    def parse_comment_line(self):
        "ignore comment lines"
        self.line_index += 1

    def parse_data_block_name(self):
        "parse a data block name"
        line = self.content_lines[self.line_index]
        self.current_data_block_name = line.strip()[5:].strip()
        self.line_index += 1
        LOG.debug("Parsed data block name: %s", self.current_data_block_name)

    def parse(self):
        "parse the entire CIF contents"
        self.line_index = 0
        while self.line_index < len(self.content_lines):
            line = self.content_lines[self.line_index].strip()
            if line:
                token = line.split()[0]
                if token in self.line_dispatch or token.startswith("#"):
                    self.line_dispatch.get(token, self.parse_comment_line)()
                elif token.startswith("_"):
                    self.parse_data_name()
                elif token.startswith("data_"):
                    self.parse_data_block_name()
                else:
                    LOG.debug("Skipping unknown line: %s", line)
                    self.line_index += 1
            else:
                self.line_index += 1
        self.line_index = 0
        return self.data

    @property
    def current_data_block(self):
        "return the current data block, adding the key if necessary"
        return self.data.setdefault(self.current_data_block_name, {})

    @property
    def current_uncertainties(self):
        return self.uncertainties.setdefault(self.current_data_block_name, {})

    @classmethod
    def from_file(cls, filename):
        "initialize a :obj:`Cif` from a file path"
        return cls.from_string(Path(filename).read_text())

    @classmethod
    def from_string(cls, contents):
        "initialize a :obj:`Cif` from string contents"
        c = cls({})
        c.content_lines = contents.splitlines()
        c.parse()
        return c
