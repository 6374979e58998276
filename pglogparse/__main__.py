#!/usr/bin/env python

import json
import logging
import sys

import click


def format_log_line(log_line, format_type):
    if format_type == "object":
        return str(log_line)
    elif format_type == "json":
        return json.dumps(log_line.to_dict())


def read_from(fp, offset):
    with open(fp, "rb") as f:
        f.seek(offset)
        return f.read()


@click.command()
@click.argument("files", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option("--prefix", "-p", default=None,
              help="log_line_prefix of the input (detected per line if not given)")
@click.option("--offset", "-O", type=int, default=None,
              help="byte offset to start reading from")
@click.option("--since", "-s", default=None,
              help="ISO-8601 timestamp; older records are skipped")
@click.option("--config", "-c", "config", default=None,
              type=click.Path(exists=True, dir_okay=False),
              help="filename of config file")
@click.option("--output", "-o", default=None,
              help="output filename")
@click.option("--type", "-t", "format_type", default="object",
              type=click.Choice(["object", "json"]),
              help="output format type")
@click.option("--verbose", "-v", is_flag=True,
              help="verbose output to stderr")
def main(files, prefix, offset, since, config, output, format_type, verbose):
    """Parse postgres log output in FILES (or stdin if FILES not given)
    into records, and report the offset to resume from."""

    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING,
                        format="%(asctime)s %(name)s %(levelname)s %(message)s",
                        stream=sys.stderr)

    from .load import load_config, parse_since
    from .preset import DEFAULT_REGISTRY
    from .stream import parse_buffer
    from ._common import ParserDefinitionError

    try:
        options = load_config(config) if config else {"prefix": "",
                                                      "since": None,
                                                      "offset": 0}
        if prefix is not None:
            if prefix and prefix not in DEFAULT_REGISTRY:
                raise click.BadParameter(
                    "use one of {0}".format(DEFAULT_REGISTRY.prefixes()),
                    param_hint="--prefix")
            options["prefix"] = prefix
        if since is not None:
            options["since"] = parse_since(since)
        if offset is not None:
            options["offset"] = offset
    except (ParserDefinitionError, ValueError) as e:
        raise click.UsageError(str(e))

    if output:
        f_output = open(output, "w")
    else:
        f_output = sys.stdout

    sources = [(fp, read_from(fp, options["offset"])) for fp in files]
    if len(files) == 0:
        sources = [("-", sys.stdin.buffer.read())]

    for name, buf in sources:
        log_lines, _, new_offset = parse_buffer(buf, options["offset"],
                                                options["since"],
                                                prefix=options["prefix"])
        for log_line in log_lines:
            f_output.write(format_log_line(log_line, format_type) + "\n")
        click.echo("{0}: offset {1}".format(name, new_offset), err=True)

    if output:
        f_output.close()


if __name__ == "__main__":
    main()
