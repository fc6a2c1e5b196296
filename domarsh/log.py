#    domarsh/log.py - logging setup for Domarsh.
#    Copyright (C) 2009 Shawn Sulma <genosha@470th.org>
#
#    This program is free software: you can redistribute it and/or modify
#    it under the terms of the GNU General Public License as published by
#    the Free Software Foundation, either version 3 of the License, or
#    (at your option) any later version.
#
#    This program is distributed in the hope that it will be useful,
#    but WITHOUT ANY WARRANTY; without even the implied warranty of
#    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#    GNU General Public License for more details.
#
#    You should have received a copy of the GNU General Public License
#    along with this program.  If not, see <http://www.gnu.org/licenses/>.
r"""Domarsh logs through :mod:`structlog` and never configures logging by itself.
Applications that want its debug events (one per marshalled domain object, circular
references, described SQLAlchemy classes) can call :func:`configure_logging`."""
import logging, sys

import structlog

__all__ = [ 'configure_logging' ]

def configure_logging ( level = "INFO", json_format = False, stream = None ) :
    r"""Route structlog (and the standard library root logger) to ``stream`` (default
    stdout) at ``level``, rendered as JSON lines or as plain console text."""
    stream = stream or sys.stdout
    level = level.upper()
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper( fmt = "iso" ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_format :
        processors.append( structlog.processors.JSONRenderer() )
    else :
        processors.append( structlog.dev.ConsoleRenderer( colors = False ) )

    structlog.configure(
        processors = processors,
        wrapper_class = structlog.make_filtering_bound_logger( logging.getLevelName( level ) ),
        logger_factory = structlog.PrintLoggerFactory( stream ),
        cache_logger_on_first_use = False,
    )
    logging.basicConfig( format = "%(message)s", stream = stream, level = level, force = True )
