#!/usr/bin/env python
#    domarshtest/proxytest.py - test cases for Domarsh entity proxies
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
import unittest

from domarsh import ConversionError, EntityProxy, PropertyAccessor, ProxyResolver, class_name, proxy, proxy_class, trim_proxy_suffix
from domarshtest import Author, Person

class EntityProxyTests ( unittest.TestCase ) :
    def setUp ( self ) :
        self.loads = []
        self.author = Author( 9, "Jane" )

    def _loader ( self, identifier ) :
        self.loads.append( identifier )
        return self.author

    def testProxyClass ( self ) :
        p = proxy( Author, 9, self._loader )
        self.assertIsInstance( p, Author )
        self.assertIsInstance( p, EntityProxy )
        self.assertEqual( type( p ).__name__, 'Author_$$_proxy' )
        self.assertEqual( trim_proxy_suffix( class_name( type( p ) ) ), class_name( Author ) )
        self.assertIs( proxy_class( Author ), type( p ) )

    def testLoadsOnceOnFirstRead ( self ) :
        p = proxy( Author, 9, self._loader )
        self.assertEqual( self.loads, [] )
        self.assertEqual( p.name, "Jane" )
        self.assertEqual( p.id, 9 )
        self.assertEqual( self.loads, [ 9 ] )

    def testClassDefaultsComeFromTarget ( self ) :
        p = proxy( Person, 9, lambda identifier : Person( identifier, "Jane" ) )
        self.assertEqual( ( p.id, p.name ), ( 9, "Jane" ) )
        self.assertEqual( Person.name, "anon" )

    def testReprDoesNotLoad ( self ) :
        p = proxy( Author, 9, self._loader )
        self.assertIn( "id=9", repr( p ) )
        self.assertEqual( self.loads, [] )

    def testMissingAttribute ( self ) :
        p = proxy( Author, 9, self._loader )
        self.assertRaises( ConversionError, PropertyAccessor().get, p, 'nickname' )

class ProxyResolverTests ( unittest.TestCase ) :
    def setUp ( self ) :
        self.resolver = ProxyResolver()
        self.author = Author( 9, "Jane" )
        self.proxy = proxy( Author, 9, lambda identifier : self.author )

    def testIsProxy ( self ) :
        self.assertTrue( self.resolver.is_proxy( self.proxy ) )
        self.assertFalse( self.resolver.is_proxy( self.author ) )

    def testIdentifier ( self ) :
        self.assertEqual( self.resolver.try_proxy_identifier( self.proxy ), 9 )
        self.assertIsNone( self.resolver.try_proxy_identifier( self.author ) )

    def testUnwrap ( self ) :
        self.assertIs( self.resolver.unwrap( self.proxy ), self.author )
        self.assertIs( self.resolver.unwrap( self.author ), self.author )
        self.assertIs( self.resolver.unwrap( None ), None )

if __name__ == "__main__":
    unittest.main()
