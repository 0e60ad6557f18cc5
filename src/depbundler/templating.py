# -*- coding: utf-8 -*-
"""Renders the files that are written alongside the bundled executable. Any instances of
{{variable_name}} in a template will be replaced by the corresponding values."""

import os
import re


parent_directory = os.path.dirname(os.path.realpath(__file__))
template_directory = os.path.join(parent_directory, 'templates')


def escape_double_quoted(value):
    """Escapes a value for use inside of a double quoted shell string."""
    return re.sub(r'(["\\$`])', r'\\\1', value)


def render_template(string, **context):
    for key, value in context.items():
        string = string.replace('{{%s}}' % key, value)
    return string


def render_template_file(filename, **context):
    if not os.path.isabs(filename):
        filename = os.path.join(template_directory, filename)
    with open(filename, 'r') as f:
        return render_template(f.read(), **context)


def render_env_script(output_directory, library_directory):
    """Renders the `env.sh` script that puts a bundle on the search paths."""
    return render_template_file(
        'env.sh',
        output_directory=escape_double_quoted(output_directory),
        library_directory=escape_double_quoted(library_directory),
    )
