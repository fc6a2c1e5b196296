#    domarshtest/__init__.py - shared fixtures for the Domarsh tests
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
import dataclasses, enum

from domarsh import (DomainClass, DomainClassRegistry, DomainProperty, collection, mapping, property_name
    , UNORDERED, SORTED, MANY_TO_ONE, ONE_TO_MANY, MANY_TO_MANY)

class Genre ( enum.Enum ) :
    NOVEL = 1
    POETRY = 2

class Address ( object ) :
    def __init__ ( self, city, street ) :
        self.city = city
        self.street = street

class Author ( object ) :
    def __init__ ( self, id, name, version = 0, address = None ) :
        self.id = id
        self.version = version
        self.name = name
        self.address = address
        self.books = []
    def __repr__ ( self ) :
        return "<Author %r>" % self.id

class Chapter ( object ) :
    def __init__ ( self, id, heading ) :
        self.id = id
        self.heading = heading
    def __repr__ ( self ) :
        return "<Chapter %r>" % self.id

class Book ( object ) :
    def __init__ ( self, id, title, author = None, version = 0, genre = None, chapters = None ) :
        self.id = id
        self.version = version
        self.title = title
        self.genre = genre
        self.author = author
        self.chapters = chapters if chapters is not None else []
        if author is not None :
            author.books.append( self )
    def __repr__ ( self ) :
        return "<Book %r>" % self.id

class Library ( object ) :
    def __init__ ( self, id, books = (), shelves = None, catalogue = None ) :
        self.id = id
        self.books = set( books )
        self.shelves = shelves or {}
        self.catalogue = catalogue or {}

def domain_registry () :
    r"""Descriptors for the fixture classes.  Author and Book refer to each other."""
    author = DomainClass( Author, version = 'version' )
    chapter = DomainClass( Chapter, properties = [ DomainProperty( 'heading', str ) ] )
    book = DomainClass( Book, version = 'version' )
    book.add_property( 'title', type = str ) \
        .add_property( 'genre', type = Genre ) \
        .add_property( 'author', type = Author, kind = MANY_TO_ONE, referenced = author ) \
        .add_property( 'chapters', type = list, kind = ONE_TO_MANY, referenced = chapter )
    author.add_property( 'name', type = str ) \
        .add_property( 'address', type = Address, embedded = True ) \
        .add_property( 'books', type = list, kind = ONE_TO_MANY, referenced = book )
    library = DomainClass( Library, properties = [
        DomainProperty( 'books', set, kind = MANY_TO_MANY, referenced = book, shape = collection( UNORDERED ) ),
        DomainProperty( 'shelves', dict, kind = ONE_TO_MANY, referenced = lambda : book, shape = mapping() ),
        DomainProperty( 'catalogue', dict, kind = ONE_TO_MANY, referenced = book, shape = mapping( SORTED ) ),
    ] )
    return DomainClassRegistry( author, chapter, book, library )

@dataclasses.dataclass
class Person :
    id: int = None
    name: str = "anon"

@dataclasses.dataclass
class Team :
    id: int = None
    lead: Person = None
    members: list = dataclasses.field( default_factory = list )

def team_registry () :
    r"""Descriptors for the dataclass fixtures, whose fields have class-level defaults.
    Team members are unordered."""
    person = DomainClass( Person, properties = [ DomainProperty( 'name', str ) ] )
    team = DomainClass( Team, properties = [
        DomainProperty( 'lead', Person, kind = MANY_TO_ONE, referenced = person ),
        DomainProperty( 'members', list, kind = ONE_TO_MANY, referenced = person, shape = collection( UNORDERED ) ),
    ] )
    return DomainClassRegistry( person, team )

def sample_book () :
    r"""``Book{id=5, version=2, title="X", author: Author{id=9}}``"""
    return Book( 5, "X", Author( 9, "Jane" ), version = 2 )

class RecordingSink ( object ) :
    r"""Sink that records the calls made on it instead of writing XML."""
    def __init__ ( self ) :
        self.events = []

    def attribute ( self, name, value ) :
        self.events.append( ( 'attribute', name, value ) )
        return self

    def start_node ( self, name ) :
        self.events.append( ( 'start', name ) )
        return self

    def end ( self ) :
        self.events.append( ( 'end', ) )
        return self

    def chars ( self, text ) :
        self.events.append( ( 'chars', text ) )
        return self

    def convert_another ( self, value ) :
        self.events.append( ( 'convert', value ) )

    def element_name ( self, value ) :
        return property_name( type( value ).__name__ )

    def attributes ( self ) :
        return [ event[1:] for event in self.events if event[0] == 'attribute' ]

    def node ( self, name ) :
        r"""The events between ``start name`` and its matching ``end``."""
        start = self.events.index( ( 'start', name ) )
        depth = 0
        for i in range( start, len( self.events ) ) :
            if self.events[i][0] == 'start' :
                depth += 1
            elif self.events[i][0] == 'end' :
                depth -= 1
                if depth == 0 :
                    return self.events[start + 1:i]
        raise AssertionError( "node %s is not closed" % name )
