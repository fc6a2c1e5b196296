#!/usr/bin/env python
#    domarshtest/marshaltest.py - test cases for the domain class marshaller
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

from domarsh import (ConversionError, DomainClass, DomainClassMarshaller, DomainClassRegistry, DomainProperty
    , PropertyFilter, Shape, collection, mapping, proxy, property_name, trim_proxy_suffix
    , TO_ONE, SEQUENCE, UNORDERED, SORTED, DEEP, MANY_TO_ONE, ONE_TO_MANY)
from domarshtest import (Address, Author, Book, Chapter, Genre, Library, RecordingSink, domain_registry
    , sample_book)

class DomainMarshallerTests ( unittest.TestCase ) :
    def setUp ( self ) :
        self.registry = domain_registry()
        self.sink = RecordingSink()

    def _marshal ( self, obj, **options ) :
        DomainClassMarshaller( self.registry, **options ).marshal_object( obj, self.sink )
        return self.sink

    def testExample ( self ) :
        """Book{id=5, version=2, title="X", author: Author{id=9}}, versions on, shallow"""
        sink = self._marshal( sample_book(), include_version = True )
        self.assertEqual( sink.events, [
            ( 'attribute', 'id', '5' ),
            ( 'attribute', 'version', '2' ),
            ( 'start', 'title' ), ( 'convert', 'X' ), ( 'end', ),
            ( 'start', 'genre' ), ( 'convert', None ), ( 'end', ),
            ( 'start', 'author' ), ( 'attribute', 'id', '9' ), ( 'end', ),
            ( 'start', 'chapters' ), ( 'end', ),
        ] )

    def testIdentifierAsString ( self ) :
        sink = self._marshal( Chapter( 11, "Opening" ) )
        self.assertEqual( sink.events[0], ( 'attribute', 'id', '11' ) )

    def testNullIdentifier ( self ) :
        sink = self._marshal( Book( None, "X" ) )
        self.assertEqual( sink.attributes(), [] )

    def testVersionDisabled ( self ) :
        """No version attribute unless asked for, whatever the descriptor says"""
        sink = self._marshal( sample_book() )
        self.assertNotIn( 'version', [ name for name, value in sink.attributes() ] )

    def testVersionWithoutVersionProperty ( self ) :
        sink = self._marshal( Chapter( 11, "Opening" ), include_version = True )
        self.assertEqual( sink.attributes(), [ ( 'id', '11' ) ] )

    def testNullVersion ( self ) :
        """A null version is still written when versions are on"""
        sink = self._marshal( Book( 5, "X", version = None ), include_version = True )
        self.assertEqual( sink.attributes(), [ ( 'id', '5' ), ( 'version', 'null' ) ] )

    def testToOneShortReference ( self ) :
        sink = self._marshal( sample_book() )
        self.assertEqual( sink.node( 'author' ), [ ( 'attribute', 'id', '9' ) ] )

    def testNullReferenceIdentifier ( self ) :
        """A short reference to an object without an identifier is not an empty node"""
        sink = self._marshal( Book( 5, "X", Author( None, "Jane" ) ) )
        self.assertEqual( sink.node( 'author' ), [ ( 'attribute', 'id', 'null' ) ] )

    def testProxyIdentifierPreferred ( self ) :
        """A proxied reference is written from its identifier, without loading it"""
        loads = []
        book = Book( 5, "X" )
        book.author = proxy( Author, 9, loads.append )
        sink = self._marshal( book )
        self.assertEqual( sink.node( 'author' ), [ ( 'attribute', 'id', '9' ) ] )
        self.assertEqual( loads, [] )

    def testProxyIdentifierFallback ( self ) :
        """A proxy without a known identifier falls back to reading the identifier property"""
        loads = []
        def loader ( identifier ) :
            loads.append( identifier )
            return Author( 12, "Ann" )
        book = Book( 5, "X" )
        book.author = proxy( Author, None, loader )
        sink = self._marshal( book )
        self.assertEqual( sink.node( 'author' ), [ ( 'attribute', 'id', '12' ) ] )
        self.assertEqual( loads, [ None ] )

    def testToManyCollection ( self ) :
        book = Book( 5, "X", chapters = [ Chapter( 11, "Opening" ), Chapter( 12, "Closing" ) ] )
        sink = self._marshal( book )
        self.assertEqual( sink.node( 'chapters' ), [
            ( 'start', 'chapter' ), ( 'attribute', 'id', '11' ), ( 'end', ),
            ( 'start', 'chapter' ), ( 'attribute', 'id', '12' ), ( 'end', ),
        ] )

    def testToManyMap ( self ) :
        library = Library( 1, shelves = { 'top' : Book( 5, "X" ), 3 : Book( 6, "Y" ) } )
        sink = self._marshal( library )
        self.assertEqual( sink.node( 'shelves' ), [
            ( 'start', 'entry' ), ( 'attribute', 'key', 'top' ), ( 'attribute', 'id', '5' ), ( 'end', ),
            ( 'start', 'entry' ), ( 'attribute', 'key', '3' ), ( 'attribute', 'id', '6' ), ( 'end', ),
        ] )

    def testMapKeyStringForm ( self ) :
        sink = self._marshal( Library( 1, shelves = { True : Book( 5, "X" ) } ) )
        self.assertEqual( sink.node( 'shelves' )[1], ( 'attribute', 'key', 'true' ) )

    def testEmbeddedRenderedInline ( self ) :
        address = Address( "Leeds", "Briggate" )
        sink = self._marshal( Author( 9, "Jane", address = address ) )
        self.assertEqual( sink.node( 'address' ), [ ( 'convert', address ) ] )

    def testEnumAssociationRenderedInline ( self ) :
        chapter = self.registry.describe( DomainClass( Chapter ).name )
        shelf = DomainClass( Library, properties = [ DomainProperty( 'shelves', Genre, kind = MANY_TO_ONE, referenced = chapter ) ] )
        library = Library( 1, shelves = Genre.NOVEL )
        DomainClassMarshaller( DomainClassRegistry( shelf ) ).marshal_object( library, self.sink )
        self.assertEqual( self.sink.node( 'shelves' ), [ ( 'convert', Genre.NOVEL ) ] )

    def testAssociationWithoutDescriptorRenderedInline ( self ) :
        loose = DomainClass( Book, properties = [ DomainProperty( 'author', kind = MANY_TO_ONE ) ] )
        author = Author( 9, "Jane" )
        DomainClassMarshaller( DomainClassRegistry( loose ) ).marshal_object( Book( 5, "X", author ), self.sink )
        self.assertEqual( self.sink.node( 'author' ), [ ( 'convert', author ) ] )

    def testNullAssociation ( self ) :
        sink = self._marshal( Book( 5, "X" ) )
        self.assertEqual( sink.node( 'author' ), [] )

    def testExcludedProperties ( self ) :
        sink = self._marshal( sample_book(), property_filter = PropertyFilter( exclude = [ 'title', 'chapters' ] ) )
        self.assertNotIn( ( 'start', 'title' ), sink.events )
        self.assertNotIn( ( 'start', 'chapters' ), sink.events )
        self.assertIn( ( 'start', 'author' ), sink.events )

    def testIncludedProperties ( self ) :
        """An include list that omits the identifier suppresses the id attribute"""
        sink = self._marshal( sample_book(), property_filter = PropertyFilter( include = [ 'title' ] ) )
        self.assertEqual( sink.events, [ ( 'start', 'title' ), ( 'convert', 'X' ), ( 'end', ) ] )

    def testExcludedVersion ( self ) :
        sink = self._marshal( sample_book(), include_version = True, property_filter = PropertyFilter( exclude = [ 'version' ] ) )
        self.assertEqual( sink.attributes()[:2], [ ( 'id', '5' ), ( 'id', '9' ) ] )

    def testCustomFilter ( self ) :
        class NoAuthorNames ( PropertyFilter ) :
            def excludes ( self, domain_class, name ) :
                return domain_class.property_name == 'author' and name == 'name'
        self._marshal( Author( 9, "Jane" ), property_filter = NoAuthorNames() )
        self.assertNotIn( ( 'start', 'name' ), self.sink.events )
        self.assertIn( ( 'start', 'books' ), self.sink.events )

    def testDeepToOne ( self ) :
        book = sample_book()
        sink = self._marshal( book, render = DEEP )
        self.assertEqual( sink.node( 'author' ), [ ( 'convert', book.author ) ] )

    def testDeepCollectionCopied ( self ) :
        chapters = [ Chapter( 11, "Opening" ), Chapter( 12, "Closing" ) ]
        sink = self._marshal( Book( 5, "X", chapters = chapters ), render = DEEP )
        [ event ] = sink.node( 'chapters' )
        self.assertEqual( event[1], chapters )
        self.assertIsNot( event[1], chapters )
        self.assertIs( type( event[1] ), list )

    def testDeepUnorderedCollection ( self ) :
        books = [ Book( 5, "X" ), Book( 6, "Y" ) ]
        sink = self._marshal( Library( 1, books ), render = DEEP )
        [ event ] = sink.node( 'books' )
        self.assertIs( type( event[1] ), set )
        self.assertEqual( event[1], set( books ) )

    def testDeepSortedMap ( self ) :
        catalogue = { 'a' : Book( 5, "X" ), 'b' : Book( 6, "Y" ), 'c' : Book( 7, "Z" ) }
        sink = self._marshal( Library( 1, catalogue = catalogue ), render = DEEP )
        [ event ] = sink.node( 'catalogue' )
        self.assertIsNot( event[1], catalogue )
        self.assertEqual( list( event[1].items() ), list( catalogue.items() ) )

    def testDeepUnwrapsProxy ( self ) :
        author = Author( 9, "Jane" )
        book = Book( 5, "X" )
        book.author = proxy( Author, 9, lambda identifier : author )
        sink = self._marshal( book, render = DEEP )
        self.assertEqual( sink.node( 'author' ), [ ( 'convert', author ) ] )

    def testUnreadableProperty ( self ) :
        book = sample_book()
        del book.title
        self.assertRaises( ConversionError, self._marshal, book )

    def testUnreadableReferenceIdentifier ( self ) :
        book = Book( 5, "X", chapters = [ object() ] )
        self.assertRaises( ConversionError, self._marshal, book )

    def testUnknownClass ( self ) :
        self.assertRaises( ConversionError, self._marshal, Address( "Leeds", "Briggate" ) )

    def testSupports ( self ) :
        marshaller = DomainClassMarshaller( self.registry )
        self.assertTrue( marshaller.supports( sample_book() ) )
        self.assertTrue( marshaller.supports( proxy( Author, 9, None ) ) )
        self.assertFalse( marshaller.supports( Address( "Leeds", "Briggate" ) ) )
        self.assertFalse( marshaller.supports( None ) )

    def testElementName ( self ) :
        marshaller = DomainClassMarshaller( self.registry )
        self.assertEqual( marshaller.element_name( sample_book() ), 'book' )
        self.assertEqual( marshaller.element_name( proxy( Author, 9, None ) ), 'author' )

    def testUnknownRenderMode ( self ) :
        self.assertRaises( ValueError, DomainClassMarshaller, self.registry, render = 'sideways' )

class DescriptorTests ( unittest.TestCase ) :
    def testTrimProxySuffix ( self ) :
        self.assertEqual( trim_proxy_suffix( 'app.Book_$$_proxy' ), 'app.Book' )
        self.assertEqual( trim_proxy_suffix( 'app.Book__$$_javassist_12' ), 'app.Book' )
        self.assertEqual( trim_proxy_suffix( 'app.Book' ), 'app.Book' )

    def testPropertyName ( self ) :
        self.assertEqual( property_name( 'app.models.BookShelf' ), 'bookShelf' )
        self.assertEqual( property_name( 'Book' ), 'book' )

    def testShapes ( self ) :
        self.assertRaises( ValueError, Shape, 'tree' )
        self.assertRaises( ValueError, mapping, SEQUENCE )
        self.assertRaises( ValueError, Shape, 'to-one', SORTED )
        self.assertEqual( collection(), Shape( 'collection', SEQUENCE ) )
        self.assertTrue( mapping().is_map )

    def testNormalize ( self ) :
        self.assertEqual( collection( UNORDERED ).normalize( [ 2, 1, 2 ] ), set( [ 1, 2 ] ) )
        self.assertEqual( collection( UNORDERED ).normalize( [ [ 1 ], [ 2 ] ] ), [ [ 1 ], [ 2 ] ] )
        self.assertEqual( collection( SORTED ).normalize( set( [ 3, 1, 2 ] ) ), [ 1, 2, 3 ] )
        self.assertEqual( collection( SORTED ).normalize( [ 3, 1 ] ), [ 3, 1 ] )
        self.assertEqual( collection().normalize( ( 3, 1 ) ), [ 3, 1 ] )
        self.assertIs( TO_ONE.normalize( self ), self )

    def testPropertyDefaults ( self ) :
        plain = DomainProperty( 'title', str )
        self.assertFalse( plain.is_association )
        self.assertIsNone( plain.shape )
        self.assertEqual( DomainProperty( 'author', kind = MANY_TO_ONE ).shape, TO_ONE )
        self.assertEqual( DomainProperty( 'chapters', kind = ONE_TO_MANY ).shape, collection() )
        embedded = DomainProperty( 'address', Address, embedded = True )
        self.assertTrue( embedded.is_association )
        self.assertEqual( embedded.shape, TO_ONE )
        self.assertTrue( DomainProperty( 'genre', Genre ).is_enum )
        self.assertRaises( ValueError, DomainProperty, 'x', kind = 'sideways' )

    def testIdentifierAndVersionNotPersistentProperties ( self ) :
        descriptor = DomainClass( Book, version = 'version', properties = [ 'id', 'version', 'title' ] )
        self.assertEqual( [ p.name for p in descriptor.properties ], [ 'title' ] )
        self.assertEqual( descriptor.get_property( 'title' ).name, 'title' )
        self.assertRaises( KeyError, descriptor.get_property, 'id' )

    def testLazyReference ( self ) :
        registry = domain_registry()
        library = registry.describe( DomainClass( Library ).name )
        self.assertIs( library.get_property( 'shelves' ).referenced, registry.describe( DomainClass( Book ).name ) )

    def testRegistry ( self ) :
        registry = domain_registry()
        name = DomainClass( Book ).name
        self.assertIn( name, registry )
        self.assertTrue( registry.is_domain_class( name ) )
        self.assertFalse( registry.is_domain_class( 'domarshtest.Address' ) )
        self.assertRaises( ConversionError, registry.describe, 'domarshtest.Address' )
        self.assertEqual( len( list( registry ) ), 4 )

if __name__ == "__main__":
    unittest.main()
