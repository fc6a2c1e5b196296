#    domarsh/SQL.py - SQLAlchemy metadata for Domarsh.
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
r"""domarsh/SQL.py lets SQLAlchemy mapped classes be marshalled as domain objects.

:class:`SQLAlchemyMetadata` is a metadata provider reading the mappers of a declarative
base (or a ``registry``, or a list of mapped classes).  Each mapped class is described as:

    - identifier: the primary key column.  Composite primary keys are not supported.
    - version: the mapper's ``version_id_col``, if any.
    - plain properties: the other mapped columns, minus the foreign key columns that back
      a many-to-one relationship (the relationship is written instead).
    - embedded properties: ``composite()`` attributes.
    - associations: relationships.  Dict-like collection classes become maps, set-like
      ones unordered collections and everything else a sequence (sorted when the
      relationship has an ``order_by``).

:class:`SQLAlchemyProxyResolver` treats every mapped instance as able to report its
identifier without a round trip: it reads the identity key of the instance state, which
never emits SQL even when the instance is expired.

    >>> from domarsh.SQL import SQLAlchemyMetadata, SQLAlchemyProxyResolver
    >>> from domarsh.XML import dumps
    >>> dumps( book, SQLAlchemyMetadata( Base ), proxy_resolver = SQLAlchemyProxyResolver() )
"""
import structlog
from sqlalchemy import inspect
from sqlalchemy.orm import CompositeProperty, RelationshipProperty, configure_mappers
from sqlalchemy.orm.interfaces import MANYTOMANY, MANYTOONE

from domarsh import (ConversionError, DomainClass, DomainProperty, ProxyResolver, TO_ONE, SEQUENCE, UNORDERED, SORTED
    , ONE_TO_ONE, MANY_TO_ONE, ONE_TO_MANY, MANY_TO_MANY, class_name, collection, mapping)

__version__ = "0.1"
__author__ = "Shawn Sulma <genosha@470th.org>"
__all__ = [ 'SQLAlchemyMetadata', 'SQLAlchemyProxyResolver' ]

logger = structlog.get_logger( __name__ )

def _mappers ( mapped ) :
    registry = getattr( mapped, 'registry', mapped )
    if hasattr( registry, 'mappers' ) :
        return list( registry.mappers )
    return [ inspect( cls ) for cls in mapped ]

def _column_type ( column ) :
    enum_class = getattr( column.type, 'enum_class', None )
    if enum_class is not None :
        return enum_class
    try :
        return column.type.python_type
    except NotImplementedError :
        return None

def _kind ( relationship ) :
    if relationship.direction is MANYTOMANY :
        return MANY_TO_MANY
    if relationship.direction is MANYTOONE :
        return MANY_TO_ONE
    return ONE_TO_MANY if relationship.uselist else ONE_TO_ONE

def _shape ( relationship ) :
    if not relationship.uselist :
        return TO_ONE
    sample = ( relationship.collection_class or list )()
    ordered = relationship.order_by is not False and relationship.order_by is not None
    if isinstance( sample, dict ) :
        return mapping( SORTED if ordered else UNORDERED )
    if isinstance( sample, ( set, frozenset ) ) :
        return collection( UNORDERED )
    return collection( SORTED if ordered else SEQUENCE )

class SQLAlchemyMetadata ( object ) :
    def __init__ ( self, mapped ) :
        self.mappers = dict( ( class_name( mapper.class_ ), mapper ) for mapper in _mappers( mapped ) )
        self.descriptors = {}

    def is_domain_class ( self, name ) :
        return name in self.mappers

    def describe ( self, name ) :
        try :
            return self.descriptors[name]
        except KeyError :
            pass
        try :
            mapper = self.mappers[name]
        except KeyError :
            raise ConversionError( "'%s' is not a mapped class." % name )
        descriptor = self.descriptors[name] = self._describe( name, mapper )
        return descriptor

    def _describe ( self, name, mapper ) :
        configure_mappers()
        if len( mapper.primary_key ) != 1 :
            raise ConversionError( "'%s' has a composite primary key; only single column identifiers are supported." % name )
        id_column = mapper.primary_key[0]
        identifier = mapper.get_property_by_column( id_column )
        version = None
        if mapper.version_id_col is not None :
            version_prop = mapper.get_property_by_column( mapper.version_id_col )
            version = DomainProperty( version_prop.key, _column_type( mapper.version_id_col ) )
        descriptor = DomainClass( name, DomainProperty( identifier.key, _column_type( id_column ) ), version )

        foreign_keys = set()
        for relationship in mapper.relationships :
            if relationship.direction is MANYTOONE :
                foreign_keys.update( relationship.local_columns )

        for prop in mapper.attrs :
            if isinstance( prop, RelationshipProperty ) :
                descriptor.add_property( DomainProperty( prop.key, prop.mapper.class_, kind = _kind( prop )
                    , referenced = self._referenced( prop.mapper ), shape = _shape( prop ) ) )
            elif isinstance( prop, CompositeProperty ) :
                descriptor.add_property( DomainProperty( prop.key, prop.composite_class, embedded = True ) )
            elif hasattr( prop, 'columns' ) :
                column = prop.columns[0]
                if column in foreign_keys :
                    continue
                descriptor.add_property( DomainProperty( prop.key, _column_type( column ) ) )
        logger.debug( "described_mapped_class", domain_class = name, properties = [ p.name for p in descriptor.properties ] )
        return descriptor

    def _referenced ( self, mapper ) :
        return lambda : self.describe( class_name( mapper.class_ ) )

class SQLAlchemyProxyResolver ( ProxyResolver ) :
    def _state ( self, value ) :
        if isinstance( value, type ) :
            return None
        return inspect( value, raiseerr = False )

    def is_proxy ( self, value ) :
        return ProxyResolver.is_proxy( self, value ) or self._state( value ) is not None

    def proxy_identifier ( self, value ) :
        if ProxyResolver.is_proxy( self, value ) :
            return ProxyResolver.proxy_identifier( self, value )
        identity = self._state( value ).identity
        if identity is None :
            return None
        return identity[0] if len( identity ) == 1 else identity
