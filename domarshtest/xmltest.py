#!/usr/bin/env python
#    domarshtest/xmltest.py - test cases for Domarsh over XML
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
import datetime, io, unittest
import xml.etree.ElementTree as ET

from domarsh import ConversionError, DEEP, proxy
from domarsh.XML import XMLConverter, dump, dumps, marshal, ERROR, NULL
from domarshtest import Address, Author, Book, Chapter, Genre, Library, Person, Team, domain_registry, sample_book, team_registry

class Point ( object ) :
    __slots__ = ( 'x', 'y' )
    def __init__ ( self, x, y ) :
        self.x = x
        self.y = y

class Shouting ( object ) :
    scalar = True
    def supports ( self, value ) :
        return isinstance( value, str )
    def marshal_object ( self, value, xml ) :
        xml.chars( value.upper() )

def _refuse ( identifier ) :
    raise AssertionError( "proxy %r should not have been loaded" % identifier )

class DomainXMLTests ( unittest.TestCase ) :
    def setUp ( self ) :
        self.registry = domain_registry()

    def _parse ( self, obj, **options ) :
        return ET.fromstring( dumps( obj, self.registry, **options ) )

    def testExample ( self ) :
        root = self._parse( sample_book(), include_version = True )
        self.assertEqual( root.tag, 'book' )
        self.assertEqual( root.attrib, { 'id' : '5', 'version' : '2' } )
        self.assertEqual( root.find( 'title' ).text, 'X' )
        author = root.find( 'author' )
        self.assertEqual( author.attrib, { 'id' : '9' } )
        self.assertEqual( len( author ), 0 )
        self.assertIsNone( author.text )

    def testVersionOffByDefault ( self ) :
        root = self._parse( sample_book() )
        self.assertEqual( root.attrib, { 'id' : '5' } )

    def testToManyCollection ( self ) :
        root = self._parse( Book( 5, "X", chapters = [ Chapter( 11, "Opening" ), Chapter( 12, "Closing" ) ] ) )
        self.assertEqual( [ ( e.tag, e.attrib ) for e in root.find( 'chapters' ) ]
            , [ ( 'chapter', { 'id' : '11' } ), ( 'chapter', { 'id' : '12' } ) ] )

    def testToManyMap ( self ) :
        root = self._parse( Library( 1, shelves = { 'top' : Book( 5, "X" ), 'bottom' : Book( 6, "Y" ) } ) )
        self.assertEqual( root.tag, 'library' )
        self.assertEqual( [ ( e.tag, e.attrib ) for e in root.find( 'shelves' ) ]
            , [ ( 'entry', { 'key' : 'top', 'id' : '5' } ), ( 'entry', { 'key' : 'bottom', 'id' : '6' } ) ] )
        self.assertEqual( len( root.find( 'books' ) ), 0 )

    def testProxiesNamedAfterTheirClass ( self ) :
        root = self._parse( Library( 1, books = [ proxy( Book, 7, _refuse ) ] ) )
        self.assertEqual( [ ( e.tag, e.attrib ) for e in root.find( 'books' ) ], [ ( 'book', { 'id' : '7' } ) ] )

    def testEnumProperty ( self ) :
        genre = self._parse( Book( 5, "X", genre = Genre.NOVEL ) ).find( 'genre' )
        self.assertEqual( genre.get( 'enumType' ), 'domarshtest.Genre' )
        self.assertEqual( genre.text, 'NOVEL' )

    def testEmbedded ( self ) :
        root = self._parse( Author( 9, "Jane", address = Address( "Leeds", "Briggate" ) ) )
        self.assertEqual( root.find( 'address/city' ).text, 'Leeds' )
        self.assertEqual( root.find( 'address/street' ).text, 'Briggate' )

    def testDeep ( self ) :
        root = self._parse( sample_book(), render = DEEP )
        author = root.find( 'author' )
        self.assertEqual( author.get( 'id' ), '9' )
        self.assertEqual( author.find( 'name' ).text, 'Jane' )
        self.assertEqual( author.find( 'books/book' ).attrib, { 'ref' : '../../..' } )

    def testDeepCircularError ( self ) :
        self.assertRaises( ConversionError, dumps, sample_book(), self.registry, render = DEEP, circular = ERROR )

    def testDeepCircularNull ( self ) :
        book = self._parse( sample_book(), render = DEEP, circular = NULL ).find( 'author/books/book' )
        self.assertEqual( book.attrib, {} )
        self.assertEqual( len( book ), 0 )

    def testBrokenPropertyPropagates ( self ) :
        book = sample_book()
        del book.author.name
        self.assertRaises( ConversionError, dumps, book, self.registry, render = DEEP )

    def testMarshal ( self ) :
        tree = marshal( sample_book(), self.registry )
        self.assertEqual( tree.getroot().tag, 'book' )

    def testDump ( self ) :
        f = io.BytesIO()
        dump( sample_book(), f, self.registry )
        self.assertTrue( f.getvalue().startswith( b"<?xml" ) )
        self.assertIn( b'<book id="5">', f.getvalue() )

class ValueXMLTests ( unittest.TestCase ) :
    def _parse ( self, obj ) :
        return ET.fromstring( dumps( obj ) )

    def testScalars ( self ) :
        self.assertEqual( dumps( 3 ), '<int>3</int>' )
        self.assertEqual( dumps( True ), '<bool>true</bool>' )
        self.assertEqual( dumps( "a&b" ), '<str>a&amp;b</str>' )

    def testNone ( self ) :
        self.assertEqual( dumps( None ), '<null />' )

    def testList ( self ) :
        root = self._parse( [ 1, "a", None ] )
        self.assertEqual( root.tag, 'list' )
        self.assertEqual( [ ( e.tag, e.text ) for e in root ], [ ( 'int', '1' ), ( 'str', 'a' ), ( 'null', None ) ] )

    def testSet ( self ) :
        self.assertEqual( self._parse( frozenset() ).tag, 'set' )

    def testMap ( self ) :
        root = self._parse( { 'a' : 1, 2 : False } )
        self.assertEqual( root.tag, 'map' )
        self.assertEqual( [ ( e.tag, e.get( 'key' ), e.text ) for e in root ], [ ( 'entry', 'a', '1' ), ( 'entry', '2', 'false' ) ] )

    def testDates ( self ) :
        self.assertEqual( dumps( datetime.date( 2009, 3, 14 ) ), '<date>2009-03-14</date>' )
        self.assertEqual( self._parse( datetime.datetime( 2009, 3, 14, 15, 9, 26 ) ).text, '2009-03-14T15:09:26' )

    def testEnum ( self ) :
        root = self._parse( Genre.POETRY )
        self.assertEqual( root.tag, 'genre' )
        self.assertEqual( root.attrib, { 'enumType' : 'domarshtest.Genre' } )
        self.assertEqual( root.text, 'POETRY' )

    def testObject ( self ) :
        root = self._parse( Address( "Leeds", "Briggate" ) )
        self.assertEqual( root.tag, 'address' )
        self.assertEqual( [ ( e.tag, e.text ) for e in root ], [ ( 'city', 'Leeds' ), ( 'street', 'Briggate' ) ] )

    def testSlots ( self ) :
        root = self._parse( Point( 1, 2 ) )
        self.assertEqual( [ ( e.tag, e.text ) for e in root ], [ ( 'x', '1' ), ( 'y', '2' ) ] )

    def testSharedIsNotCircular ( self ) :
        """The same object twice in a list is written twice"""
        address = Address( "Leeds", "Briggate" )
        root = self._parse( [ address, address ] )
        self.assertEqual( [ e.find( 'city' ).text for e in root ], [ 'Leeds', 'Leeds' ] )

    def testSelfCycle ( self ) :
        data = [ 1 ]
        data.append( data )
        root = self._parse( data )
        self.assertEqual( root[1].tag, 'list' )
        self.assertEqual( root[1].attrib, { 'ref' : '..' } )

    def testRegisteredMarshallerWins ( self ) :
        xml = XMLConverter( [ Shouting() ] )
        self.assertEqual( xml.marshal( "abc" ).getroot().text, 'ABC' )
        self.assertEqual( xml.marshal( [ "d" ] ).getroot()[0].text, 'D' )

    def testUnknownCircularBehaviour ( self ) :
        self.assertRaises( ValueError, XMLConverter, circular = 'maybe' )

    def testElementNames ( self ) :
        xml = XMLConverter()
        self.assertEqual( xml.element_name( None ), 'null' )
        self.assertEqual( xml.element_name( () ), 'list' )
        self.assertEqual( xml.element_name( {} ), 'map' )
        self.assertEqual( xml.element_name( Address( "Leeds", "Briggate" ) ), 'address' )

class DataclassXMLTests ( unittest.TestCase ) :
    """Dataclasses keep their field defaults on the class, so proxies must not serve them"""
    def setUp ( self ) :
        self.registry = team_registry()
        self.loads = []

    def _loader ( self, person ) :
        def load ( identifier ) :
            self.loads.append( identifier )
            return person
        return load

    def _parse ( self, obj, **options ) :
        return ET.fromstring( dumps( obj, self.registry, **options ) )

    def testProxiedRoot ( self ) :
        root = self._parse( proxy( Person, 9, self._loader( Person( 9, "Jane" ) ) ) )
        self.assertEqual( root.tag, 'person' )
        self.assertEqual( root.attrib, { 'id' : '9' } )
        self.assertEqual( root.find( 'name' ).text, 'Jane' )
        self.assertEqual( self.loads, [ 9 ] )

    def testProxiedReferenceFallback ( self ) :
        root = self._parse( Team( 1, proxy( Person, None, self._loader( Person( 12, "Ann" ) ) ) ) )
        self.assertEqual( root.find( 'lead' ).attrib, { 'id' : '12' } )
        self.assertEqual( self.loads, [ None ] )

    def testNullVersionAndReference ( self ) :
        root = ET.fromstring( dumps( Book( 5, "X", Author( None, "Jane" ), version = None ), domain_registry(), include_version = True ) )
        self.assertEqual( root.attrib, { 'id' : '5', 'version' : 'null' } )
        self.assertEqual( root.find( 'author' ).attrib, { 'id' : 'null' } )

    def testDeepUnhashableMembers ( self ) :
        root = self._parse( Team( 1, members = [ Person( 1, "a" ), Person( 2, "b" ) ] ), render = DEEP )
        members = [ ( e.tag, e.attrib, e.find( 'name' ).text ) for e in root.find( 'members' ) ]
        self.assertEqual( members, [ ( 'person', { 'id' : '1' }, 'a' ), ( 'person', { 'id' : '2' }, 'b' ) ] )

if __name__ == "__main__":
    unittest.main()
