#!/usr/bin/env python
#    domarshtest/sqltest.py - test cases for Domarsh over SQLAlchemy mappings
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
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Set

from sqlalchemy import Column, Enum as SQLEnum, ForeignKey, Integer, String, Table, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, attribute_keyed_dict, mapped_column, relationship

from domarsh import (ConversionError, TO_ONE, SEQUENCE, UNORDERED, SORTED
    , MANY_TO_ONE, ONE_TO_MANY, MANY_TO_MANY, class_name, collection, mapping)
from domarsh.SQL import SQLAlchemyMetadata, SQLAlchemyProxyResolver
from domarsh.XML import dumps
from domarshtest import Genre

class Base ( DeclarativeBase ) :
    pass

book_tag = Table( "book_tag", Base.metadata
    , Column( "book_id", ForeignKey( "book.id" ), primary_key = True )
    , Column( "tag_id", ForeignKey( "tag.id" ), primary_key = True ) )

class Writer ( Base ) :
    __tablename__ = "writer"
    id: Mapped[int] = mapped_column( Integer, primary_key = True )
    name: Mapped[str] = mapped_column( String( 100 ) )
    version_id: Mapped[int] = mapped_column( Integer, nullable = False )
    books: Mapped[List["Novel"]] = relationship( back_populates = "writer", order_by = "Novel.id" )
    __mapper_args__ = { "version_id_col" : version_id }

class Shelf ( Base ) :
    __tablename__ = "shelf"
    id: Mapped[int] = mapped_column( Integer, primary_key = True )
    books: Mapped[Dict[str, "Novel"]] = relationship( collection_class = attribute_keyed_dict( "title" ) )

class Novel ( Base ) :
    __tablename__ = "book"
    id: Mapped[int] = mapped_column( Integer, primary_key = True )
    title: Mapped[str] = mapped_column( String( 100 ) )
    genre: Mapped[Optional[Genre]] = mapped_column( SQLEnum( Genre ), nullable = True )
    writer_id: Mapped[Optional[int]] = mapped_column( ForeignKey( "writer.id" ) )
    shelf_id: Mapped[Optional[int]] = mapped_column( ForeignKey( "shelf.id" ) )
    writer: Mapped[Optional[Writer]] = relationship( back_populates = "books" )
    tags: Mapped[Set["Tag"]] = relationship( secondary = book_tag, collection_class = set )
    chapters: Mapped[List["Section"]] = relationship()

class Section ( Base ) :
    __tablename__ = "section"
    id: Mapped[int] = mapped_column( Integer, primary_key = True )
    novel_id: Mapped[int] = mapped_column( ForeignKey( "book.id" ) )
    heading: Mapped[str] = mapped_column( String( 100 ) )

class Tag ( Base ) :
    __tablename__ = "tag"
    id: Mapped[int] = mapped_column( Integer, primary_key = True )
    label: Mapped[str] = mapped_column( String( 50 ) )

class Pairing ( Base ) :
    __tablename__ = "pairing"
    first_id: Mapped[int] = mapped_column( Integer, primary_key = True )
    second_id: Mapped[int] = mapped_column( Integer, primary_key = True )

class SQLAlchemyMetadataTests ( unittest.TestCase ) :
    def setUp ( self ) :
        self.metadata = SQLAlchemyMetadata( Base )

    def testDomainClasses ( self ) :
        self.assertTrue( self.metadata.is_domain_class( class_name( Novel ) ) )
        self.assertFalse( self.metadata.is_domain_class( class_name( Genre ) ) )
        self.assertRaises( ConversionError, self.metadata.describe, class_name( Genre ) )

    def testMappedClassList ( self ) :
        metadata = SQLAlchemyMetadata( [ Writer, Novel ] )
        self.assertTrue( metadata.is_domain_class( class_name( Writer ) ) )
        self.assertFalse( metadata.is_domain_class( class_name( Tag ) ) )

    def testIdentifierAndVersion ( self ) :
        writer = self.metadata.describe( class_name( Writer ) )
        self.assertEqual( writer.identifier.name, 'id' )
        self.assertEqual( writer.version.name, 'version_id' )
        self.assertEqual( set( p.name for p in writer.properties ), set( [ 'name', 'books' ] ) )
        self.assertIsNone( self.metadata.describe( class_name( Novel ) ).version )

    def testProperties ( self ) :
        novel = self.metadata.describe( class_name( Novel ) )
        self.assertEqual( set( p.name for p in novel.properties ), set( [ 'title', 'genre', 'shelf_id', 'writer', 'tags', 'chapters' ] ) )
        self.assertIs( novel.get_property( 'title' ).type, str )
        self.assertFalse( novel.get_property( 'title' ).is_association )
        self.assertIs( novel.get_property( 'genre' ).type, Genre )

    def testAssociations ( self ) :
        novel = self.metadata.describe( class_name( Novel ) )
        writer = novel.get_property( 'writer' )
        self.assertEqual( ( writer.kind, writer.shape ), ( MANY_TO_ONE, TO_ONE ) )
        self.assertIs( writer.referenced, self.metadata.describe( class_name( Writer ) ) )
        tags = novel.get_property( 'tags' )
        self.assertEqual( ( tags.kind, tags.shape ), ( MANY_TO_MANY, collection( UNORDERED ) ) )
        chapters = novel.get_property( 'chapters' )
        self.assertEqual( ( chapters.kind, chapters.shape ), ( ONE_TO_MANY, collection( SEQUENCE ) ) )
        books = self.metadata.describe( class_name( Writer ) ).get_property( 'books' )
        self.assertEqual( ( books.kind, books.shape ), ( ONE_TO_MANY, collection( SORTED ) ) )
        shelved = self.metadata.describe( class_name( Shelf ) ).get_property( 'books' )
        self.assertEqual( ( shelved.kind, shelved.shape ), ( ONE_TO_MANY, mapping( UNORDERED ) ) )

    def testCompositePrimaryKey ( self ) :
        self.assertRaises( ConversionError, self.metadata.describe, class_name( Pairing ) )

class SQLAlchemyMarshallingTests ( unittest.TestCase ) :
    def setUp ( self ) :
        self.engine = create_engine( "sqlite://" )
        Base.metadata.create_all( self.engine )
        self.session = Session( self.engine )
        self.metadata = SQLAlchemyMetadata( Base )
        self.statements = []
        event.listen( self.engine, "before_cursor_execute", self._record )

        writer = Writer( id = 9, name = "Jane" )
        shelf = Shelf( id = 3 )
        novel = Novel( id = 5, title = "X", genre = Genre.NOVEL, writer = writer, shelf_id = 3 )
        novel.tags = set( [ Tag( id = 1, label = "classic" ) ] )
        self.session.add_all( [ writer, shelf, novel ] )
        self.session.commit()

    def tearDown ( self ) :
        self.session.close()
        self.engine.dispose()

    def _record ( self, conn, cursor, statement, parameters, context, executemany ) :
        self.statements.append( statement )

    def _parse ( self, obj, **options ) :
        return ET.fromstring( dumps( obj, self.metadata, proxy_resolver = SQLAlchemyProxyResolver(), **options ) )

    def testShallow ( self ) :
        root = self._parse( self.session.get( Novel, 5 ) )
        self.assertEqual( root.tag, 'novel' )
        self.assertEqual( root.attrib, { 'id' : '5' } )
        self.assertEqual( root.find( 'title' ).text, 'X' )
        self.assertEqual( root.find( 'genre' ).text, 'NOVEL' )
        self.assertEqual( root.find( 'writer' ).attrib, { 'id' : '9' } )
        self.assertEqual( [ ( e.tag, e.attrib ) for e in root.find( 'tags' ) ], [ ( 'tag', { 'id' : '1' } ) ] )
        self.assertIsNone( root.find( 'writer_id' ) )

    def testVersion ( self ) :
        root = self._parse( self.session.get( Writer, 9 ), include_version = True )
        self.assertEqual( root.attrib, { 'id' : '9', 'version' : '1' } )
        self.assertEqual( [ e.attrib for e in root.find( 'books' ) ], [ { 'id' : '5' } ] )

    def testMap ( self ) :
        root = self._parse( self.session.get( Shelf, 3 ) )
        self.assertEqual( [ ( e.tag, e.attrib ) for e in root.find( 'books' ) ], [ ( 'entry', { 'key' : 'X', 'id' : '5' } ) ] )

    def testDeep ( self ) :
        root = self._parse( self.session.get( Novel, 5 ), render = 'deep' )
        self.assertEqual( root.find( 'writer/name' ).text, 'Jane' )
        self.assertEqual( root.find( 'writer/books/novel' ).attrib, { 'ref' : '../../..' } )

    def testIdentityWithoutSQL ( self ) :
        """The identity key of an expired instance is read without a query"""
        writer = self.session.get( Writer, 9 )
        self.session.expire( writer )
        del self.statements[:]
        self.assertEqual( SQLAlchemyProxyResolver().try_proxy_identifier( writer ), 9 )
        self.assertEqual( self.statements, [] )

    def testTransientFallsBackToAttribute ( self ) :
        novel = Novel( id = 6, title = "Y", writer = Writer( id = 42, name = "Ann" ) )
        resolver = SQLAlchemyProxyResolver()
        self.assertTrue( resolver.is_proxy( novel.writer ) )
        self.assertIsNone( resolver.try_proxy_identifier( novel.writer ) )
        root = ET.fromstring( dumps( novel, self.metadata, proxy_resolver = resolver ) )
        self.assertEqual( root.find( 'writer' ).attrib, { 'id' : '42' } )

    def testPlainValuesAreNotProxies ( self ) :
        resolver = SQLAlchemyProxyResolver()
        self.assertFalse( resolver.is_proxy( 5 ) )
        self.assertFalse( resolver.is_proxy( Genre.NOVEL ) )
        self.assertFalse( resolver.is_proxy( Novel ) )

if __name__ == "__main__":
    unittest.main()
