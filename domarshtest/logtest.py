#!/usr/bin/env python
#    domarshtest/logtest.py - test cases for Domarsh logging
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
import io, json, unittest

import structlog

from domarsh import DEEP
from domarsh.XML import dumps
from domarsh.log import configure_logging
from domarshtest import domain_registry, sample_book

class LoggingTests ( unittest.TestCase ) :
    def setUp ( self ) :
        self.stream = io.StringIO()

    def tearDown ( self ) :
        structlog.reset_defaults()

    def _events ( self ) :
        return [ json.loads( line ) for line in self.stream.getvalue().splitlines() if line.strip() ]

    def testDebugEvents ( self ) :
        configure_logging( "debug", json_format = True, stream = self.stream )
        dumps( sample_book(), domain_registry(), render = DEEP )
        events = self._events()
        marshalled = [ e for e in events if e['event'] == 'marshal_domain_object' ]
        self.assertEqual( [ e['domain_class'] for e in marshalled ], [ 'domarshtest.Book', 'domarshtest.Author' ] )
        self.assertEqual( marshalled[0]['level'], 'debug' )
        self.assertEqual( marshalled[0]['render'], 'deep' )
        self.assertIn( 'circular_reference', [ e['event'] for e in events ] )

    def testLevelFilters ( self ) :
        configure_logging( "info", json_format = True, stream = self.stream )
        dumps( sample_book(), domain_registry() )
        self.assertEqual( self._events(), [] )

    def testConsoleRenderer ( self ) :
        configure_logging( "debug", stream = self.stream )
        dumps( sample_book(), domain_registry() )
        self.assertIn( "marshal_domain_object", self.stream.getvalue() )

if __name__ == "__main__":
    unittest.main()
