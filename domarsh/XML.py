#    domarsh/XML.py - ElementTree output for Domarsh.
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
r"""domarsh/XML.py is the XML writer used by the :mod:`domarsh` marshallers.  It provides
functions similar to those found in :mod:`pickle` or :mod:`json` (``marshal``, ``dumps``,
``dump``) but the representation is XML built with ElementTree.  There is no way back:
nothing here reads XML.

:class:`XMLConverter` keeps a stack of open elements and a registry of marshallers.  A
marshaller is anything with ``supports( value )`` and ``marshal_object( value, xml )``; it
may also offer ``element_name( value )``.  The most recently registered marshaller that
supports a value wins, so registering a :class:`domarsh.DomainClassMarshaller` (which the
module functions do when given ``metadata``) takes precedence over the defaults.

The elements written by the default marshallers are:

    <title>X</title> - strings, numbers and other scalars, as their ``str()``.  Booleans are
        written as ``true``/``false``, dates and times in ISO 8601.

    <genre enumType='module.Genre'>NOVEL</genre> - an enum member (by name).

    <list><int>1</int><str>a</str></list> - lists, tuples, sets and deques.  Each item is a
        child named after the item (``set`` for sets and frozensets, ``map`` for mappings,
        otherwise the class name with a lower-case first letter).

    <map><entry key='a'>...</entry></map> - mappings; keys are written in their string form.

    <point><x>1</x><y>2</y></point> - any other object, one child per public non-callable
        attribute (from ``__dict__`` or ``__slots__``).

``None`` writes nothing.  When an object is met again while it is still being written
(a cycle) the converter's ``circular`` setting decides: ``REF`` writes a ``ref``
attribute with the relative path (``../..``) to the element holding the object,
``ERROR`` raises :class:`domarsh.ConversionError` and ``NULL`` writes nothing.
"""
import collections, collections.abc, datetime, decimal, enum, uuid
import xml.etree.ElementTree as ET

import structlog

from domarsh import ConversionError, DomainClassMarshaller, EntityProxy, class_name, property_name, text, trim_proxy_suffix

__version__ = "0.1"
__author__ = "Shawn Sulma <genosha@470th.org>"
__all__ = [ 'XMLConverter', 'converter', 'marshal', 'dumps', 'dump', 'REF', 'ERROR', 'NULL' ]

logger = structlog.get_logger( __name__ )

REF = "ref"
ERROR = "error"
NULL = "null"

def _fields ( obj ) :
    if hasattr( obj, '__dict__' ) :
        return [ item for item in obj.__dict__.items() if ( not item[0].startswith( '_' ) ) and not hasattr( item[1], '__call__' ) ]
    slots = getattr( obj, '__slots__', () )
    if isinstance( slots, str ) :
        slots = ( slots, )
    return [ ( slot, getattr( obj, slot ) ) for slot in slots
        if ( not slot.startswith( '_' ) ) and hasattr( obj, slot ) and not hasattr( getattr( obj, slot ), '__call__' ) ]

class ObjectMarshaller ( object ) :
    def supports ( self, value ) :
        return True

    def marshal_object ( self, value, xml ) :
        if isinstance( value, EntityProxy ) :
            value = value._proxy_load()
        for name, field in _fields( value ) :
            xml.start_node( name )
            xml.convert_another( field )
            xml.end()

class ScalarMarshaller ( object ) :
    scalar = True
    types = ( str, bytes, int, float, complex, decimal.Decimal, uuid.UUID )

    def supports ( self, value ) :
        return isinstance( value, self.types )

    def marshal_object ( self, value, xml ) :
        xml.chars( value.decode( 'utf-8' ) if isinstance( value, bytes ) else value )

class DateMarshaller ( object ) :
    scalar = True

    def supports ( self, value ) :
        return isinstance( value, ( datetime.date, datetime.time ) )

    def marshal_object ( self, value, xml ) :
        xml.chars( value.isoformat() )

class EnumMarshaller ( object ) :
    scalar = True

    def supports ( self, value ) :
        return isinstance( value, enum.Enum )

    def marshal_object ( self, value, xml ) :
        xml.attribute( 'enumType', class_name( type( value ) ) )
        xml.chars( value.name )

class CollectionMarshaller ( object ) :
    types = ( list, tuple, set, frozenset, collections.deque )

    def supports ( self, value ) :
        return isinstance( value, self.types )

    def element_name ( self, value ) :
        return "set" if isinstance( value, ( set, frozenset ) ) else "list"

    def marshal_object ( self, value, xml ) :
        for item in value :
            xml.start_node( xml.element_name( item ) )
            xml.convert_another( item )
            xml.end()

class MapMarshaller ( object ) :
    def supports ( self, value ) :
        return isinstance( value, collections.abc.Mapping )

    def element_name ( self, value ) :
        return "map"

    def marshal_object ( self, value, xml ) :
        for key, item in value.items() :
            xml.start_node( 'entry' ).attribute( 'key', text( key ) )
            xml.convert_another( item )
            xml.end()

def default_marshallers () :
    r"""The built-in marshallers, lowest priority first."""
    return [ ObjectMarshaller(), ScalarMarshaller(), DateMarshaller(), EnumMarshaller()
        , CollectionMarshaller(), MapMarshaller() ]

class XMLConverter ( object ) :
    def __init__ ( self, marshallers = (), circular = REF ) :
        if circular not in ( REF, ERROR, NULL ) :
            raise ValueError( "unknown circular reference behaviour: %r" % circular )
        self.circular = circular
        self.marshallers = default_marshallers()
        for marshaller in marshallers :
            self.register( marshaller )
        self._reset()

    def _reset ( self ) :
        self.root = None
        self.elements = []
        self.references = []

    def register ( self, marshaller ) :
        self.marshallers.append( marshaller )
        return self

    def find_marshaller ( self, value ) :
        for marshaller in reversed( self.marshallers ) :
            if marshaller.supports( value ) :
                return marshaller
        raise ConversionError( "no marshaller supports %s" % type( value ).__name__ )

    def marshal ( self, obj ) :
        r"""Write ``obj`` as a new document and return it as an ``ElementTree``."""
        self._reset()
        self.root = ET.Element( self.element_name( obj ) )
        self.elements.append( self.root )
        self.convert_another( obj )
        self.elements.pop()
        return ET.ElementTree( self.root )

    def start_node ( self, name ) :
        self.elements.append( ET.SubElement( self.elements[-1], name ) )
        return self

    def end ( self ) :
        self.elements.pop()
        return self

    def attribute ( self, name, value ) :
        self.elements[-1].set( name, text( value ) )
        return self

    def chars ( self, value ) :
        element = self.elements[-1]
        element.text = ( element.text or "" ) + text( value )
        return self

    def element_name ( self, value ) :
        if value is None :
            return "null"
        name = getattr( self.find_marshaller( value ), 'element_name', None )
        if name is not None :
            return name( value )
        return property_name( trim_proxy_suffix( type( value ).__name__ ) )

    def convert_another ( self, value ) :
        if value is None :
            return
        marshaller = self.find_marshaller( value )
        if getattr( marshaller, 'scalar', False ) :
            marshaller.marshal_object( value, self )
            return
        for oid, depth in self.references :
            if oid == id( value ) :
                self._circular( value, depth )
                return
        self.references.append( ( id( value ), len( self.elements ) ) )
        try :
            marshaller.marshal_object( value, self )
        finally :
            self.references.pop()

    def _circular ( self, value, depth ) :
        logger.debug( "circular_reference", type = type( value ).__name__, behaviour = self.circular )
        if self.circular == ERROR :
            raise ConversionError( "circular reference to %s" % type( value ).__name__ )
        if self.circular == REF :
            self.attribute( 'ref', "/".join( [ ".." ] * ( len( self.elements ) - depth ) ) or "." )

def converter ( metadata = None, marshallers = (), circular = REF, **options ) :
    r"""An :class:`XMLConverter`; with ``metadata`` a :class:`domarsh.DomainClassMarshaller`
    built from ``options`` is registered on top of ``marshallers``."""
    xml = XMLConverter( marshallers, circular = circular )
    if metadata is not None :
        xml.register( DomainClassMarshaller( metadata, **options ) )
    return xml

def marshal ( obj, metadata = None, **options ) :
    r"""Prepares the passed object ``obj`` as an ElementTree."""
    return converter( metadata, **options ).marshal( obj )

def dumps ( obj, metadata = None, encoding = "unicode", **options ) :
    r"""Dump the passed object ``obj`` (and whatever it renders of its object graph) as
    XML which is returned as a string (or bytes when an ``encoding`` is named)."""
    return ET.tostring( marshal( obj, metadata, **options ).getroot(), encoding = encoding )

def dump ( obj, f, metadata = None, encoding = "utf-8", **options ) :
    r"""Dump the passed object ``obj`` as an XML document written to the file-like object
    ``f``.  With the default encoding ``f`` must accept bytes; pass ``encoding = "unicode"``
    for text files."""
    marshal( obj, metadata, **options ).write( f, encoding = encoding, xml_declaration = True )
