# miniapp_guide/base_utils.py

import logging
import re
from collections import OrderedDict

import commentjson
import yaml
from json_repair import repair_json

logger = logging.getLogger("miniapp_guide")


class BaseUtils():

    def clean_triple_backticks(self, code) -> str:
        pattern = r'```[a-zA-Z]*\n?|```\n?'
        return re.sub(pattern, '', code)

    def first_token(self, raw) -> str:
        """
        Trimmed, unquoted first whitespace-delimited token of an oracle answer.
        """
        if raw is None:
            return ""
        parts = str(raw).strip().split()
        return parts[0].strip("\"'`") if parts else ""

    def unsafe_string_format(self, dest_string, print_unused_keys_report=True, **kwargs):
        """
        Replaces only the {KEY} placeholders whose KEY is passed in kwargs.

        Unlike str.format, other braces (JSON examples inside prompts) are left
        untouched.
        """
        missing_keys = []

        def replacer(match):
            key = match.group(1)
            if key in kwargs:
                return str(kwargs[key])
            missing_keys.append(key)
            return match.group(0)

        result = re.sub(r'\{(\w+)\}', replacer, dest_string)
        if missing_keys and print_unused_keys_report:
            logger.debug(f"Missing keys within string-to-format in unsafe_string_format: {', '.join(missing_keys)}")
        return result

    def load_fault_tolerant_json(self, json_str, ensure_ordered=False):
        """
        Attempts to load a JSON-like string: commentjson first, then pyyaml on a
        sanitized copy, then both again on a json_repair'ed copy.
        Raises ValueError when nothing yields a document.
        """
        def sanitize_json_string(input_str):
            def process_string_segment(match):
                content = match.group(1)
                # escape lone backslashes, literal newlines
                content = re.sub(r'(?<!\\)\\(?![bfnrtu"\\/])', r'\\\\', content)
                content = re.sub(r'(?<!\\)\n', r'\\n', content)
                return f'"{content}"'

            input_str = self.clean_triple_backticks(input_str)
            input_str = re.sub(r'^\s*//.*?$|/\*.*?\*/', '', input_str, flags=re.MULTILINE | re.DOTALL)
            return re.sub(r'(?<!\\)"((?:[^"\\]|\\.)*?)"', process_string_segment, input_str, flags=re.DOTALL)

        def load_json(raw):
            err = ""
            try:
                hook = OrderedDict if ensure_ordered else None
                data = commentjson.loads(self.clean_triple_backticks(raw), object_pairs_hook=hook)
                if isinstance(data, (dict, list)):
                    return data, ""
                err = "JSON parsing produced no document."
            except Exception as e:
                err = str(e)
            try:
                data = yaml.safe_load(sanitize_json_string(raw))
                if isinstance(data, (dict, list)):
                    return data, ""
                err += "\n--\nYAML parsing produced no document."
            except yaml.YAMLError as e:
                err += "\n--\n" + str(e)
            return None, err

        data, err = load_json(json_str)
        if data is not None:
            return data
        r_data, r_err = load_json(repair_json(json_str))
        if r_data:
            return r_data
        logger.warning(f"[JSON] unparseable oracle output: {r_err}")
        raise ValueError(f"load_fault_tolerant_json: JSON parsing failed: {r_err}")
