#    domarsh/__init__.py - DOMain object marSHaller
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
r"""DOMARSH (DOMain object marSHaller) writes persistent "domain" objects (instances of
ORM-mapped classes) as XML.  Unlike a general object marshaller it does not dump every
attribute it can find: it asks a metadata provider which properties are persistent, which
one is the identifier, which one is the version, and which ones are associations to other
domain classes.

A marshalled domain object looks like::

    <book id="5" version="2">
      <title>X</title>
      <author id="9"/>
      <chapters>
        <chapter id="11"/>
        <chapter id="12"/>
      </chapters>
    </book>

By default associations are rendered "shallow": only the identifier of the referenced
object is written (a short reference).  In ``DEEP`` render mode the associated objects are
rendered in full, which lets the XML sink handle nesting and circular references.

The pieces involved are:

 - :class:`DomainClass` and :class:`DomainProperty` describe a mapped class.  Association
   properties carry a :class:`Shape` (``TO_ONE``, a collection or a map, with an ordering
   flag) which decides how the value is walked.
 - a metadata provider, anything with ``is_domain_class( name )`` and ``describe( name )``.
   :class:`DomainClassRegistry` is an in-memory one; :mod:`domarsh.SQL` reads SQLAlchemy
   mappers.
 - a :class:`PropertyAccessor` reading named properties off instances.
 - a :class:`ProxyResolver` which knows about lazy placeholders (:class:`EntityProxy`) and
   can hand out their identifiers without loading them.
 - a :class:`PropertyFilter` deciding which properties are written.
 - the sink: :class:`domarsh.XML.XMLConverter`.

Class names are always compared in their ``module.QualName`` form with any proxy suffix
removed (see :func:`trim_proxy_suffix`).
"""
import enum

import structlog

__version__ = "0.1"
__author__ = "Shawn Sulma <genosha@470th.org>"
__all__ = [ 'ConversionError', 'DomainClass', 'DomainProperty', 'DomainClassRegistry'
    , 'DomainClassMarshaller', 'PropertyAccessor', 'PropertyFilter', 'ProxyResolver'
    , 'EntityProxy', 'Shape', 'collection', 'mapping', 'proxy', 'proxy_class'
    , 'class_name', 'trim_proxy_suffix', 'property_name', 'text'
    , 'TO_ONE', 'SEQUENCE', 'UNORDERED', 'SORTED', 'SHALLOW', 'DEEP'
    , 'ONE_TO_ONE', 'MANY_TO_ONE', 'ONE_TO_MANY', 'MANY_TO_MANY' ]

logger = structlog.get_logger( __name__ )

PROXY_SUFFIX = "_$$_proxy"

# association kinds
ONE_TO_ONE = "one-to-one"
MANY_TO_ONE = "many-to-one"
ONE_TO_MANY = "one-to-many"
MANY_TO_MANY = "many-to-many"
KINDS = frozenset( [ ONE_TO_ONE, MANY_TO_ONE, ONE_TO_MANY, MANY_TO_MANY ] )
TO_ONE_KINDS = frozenset( [ ONE_TO_ONE, MANY_TO_ONE ] )

# orderings of to-many shapes
SEQUENCE = "sequence"
UNORDERED = "unordered"
SORTED = "sorted"

# render modes
SHALLOW = "shallow"
DEEP = "deep"

class ConversionError ( Exception ) :
    r"""Raised when an object cannot be converted: unknown domain class, unreadable
    property, unsupported mapping or a refused circular reference."""

def class_name ( cls ) :
    return "%s.%s" % ( cls.__module__, cls.__qualname__ )

def trim_proxy_suffix ( name ) :
    r"""Strip a proxy marker (everything from the first ``$$``, then any trailing
    underscores) from a class name."""
    i = name.find( "$$" )
    if i > -1 :
        name = name[:i].rstrip( "_" )
    return name

def property_name ( name ) :
    r"""``'app.models.BookShelf'`` -> ``'bookShelf'``"""
    short = name.rsplit( ".", 1 )[-1]
    return short[:1].lower() + short[1:]

def text ( value ) :
    r"""The string form of an attribute or text value: ``null`` for None, ``true``/``false``
    for booleans, otherwise ``str()``."""
    if value is None :
        return "null"
    if isinstance( value, bool ) :
        return "true" if value else "false"
    return str( value )

class Shape ( object ) :
    r"""How an association value is laid out: a single object (``to-one``), a collection
    or a map.  To-many shapes carry an ordering: ``SEQUENCE`` (ordered as stored),
    ``UNORDERED`` or ``SORTED`` (maps are ``UNORDERED`` or ``SORTED``)."""
    __slots__ = ( 'tag', 'ordering' )
    orderings = { 'to-one' : ( None, ), 'collection' : ( SEQUENCE, UNORDERED, SORTED ), 'map' : ( UNORDERED, SORTED ) }

    def __init__ ( self, tag, ordering = None ) :
        if tag not in self.orderings :
            raise ValueError( "unknown shape: %r" % tag )
        if ordering not in self.orderings[tag] :
            raise ValueError( "ordering %r is not valid for a %s shape" % ( ordering, tag ) )
        self.tag = tag
        self.ordering = ordering

    is_to_one = property( lambda self : self.tag == 'to-one' )
    is_collection = property( lambda self : self.tag == 'collection' )
    is_map = property( lambda self : self.tag == 'map' )

    def normalize ( self, value ) :
        r"""Copy ``value`` into a plain container of the same category.  Unordered
        collections become sets (lists when the elements are unhashable).  Sorted values
        keep the order the source already has, except that a set or frozenset has none and
        is sorted by its elements' natural order when they have one."""
        if self.is_to_one :
            return value
        if self.is_map :
            return dict( value )
        if self.ordering == UNORDERED :
            try :
                return set( value )
            except TypeError :
                return list( value )
        if self.ordering == SORTED and isinstance( value, ( set, frozenset ) ) :
            try :
                return sorted( value )
            except TypeError :
                pass
        return list( value )

    def __eq__ ( self, other ) :
        return isinstance( other, Shape ) and ( self.tag, self.ordering ) == ( other.tag, other.ordering )

    def __hash__ ( self ) :
        return hash( ( self.tag, self.ordering ) )

    def __repr__ ( self ) :
        if self.ordering :
            return "<Shape: %s,%s>" % ( self.tag, self.ordering )
        return "<Shape: %s>" % self.tag

TO_ONE = Shape( 'to-one' )

def collection ( ordering = SEQUENCE ) :
    return Shape( 'collection', ordering )

def mapping ( ordering = UNORDERED ) :
    return Shape( 'map', ordering )

class DomainProperty ( object ) :
    r"""A persistent property of a domain class.

    ``kind`` is None for plain values, otherwise one of the association kinds.  Embedded
    properties are associations that are always rendered inline.  ``referenced`` is the
    :class:`DomainClass` of the associated objects; it may be given as a callable returning
    it, which is resolved on first use (mappings are often cyclic).  When ``shape`` is not
    given, to-one kinds and embedded properties get ``TO_ONE`` and to-many kinds get an
    ordered collection."""
    __slots__ = ( 'name', 'type', 'kind', 'embedded', '_referenced', 'shape' )

    def __init__ ( self, name, type = None, kind = None, embedded = False, referenced = None, shape = None ) :
        if kind is not None and kind not in KINDS :
            raise ValueError( "unknown association kind: %r" % kind )
        self.name = name
        self.type = type
        self.kind = kind
        self.embedded = embedded
        self._referenced = referenced
        if shape is None and ( kind or embedded ) :
            shape = TO_ONE if embedded or kind in TO_ONE_KINDS else collection()
        self.shape = shape

    @property
    def referenced ( self ) :
        if callable( self._referenced ) :
            self._referenced = self._referenced()
        return self._referenced

    @property
    def is_association ( self ) :
        return self.kind is not None or self.embedded

    @property
    def is_enum ( self ) :
        return isinstance( self.type, type ) and issubclass( self.type, enum.Enum )

    def __repr__ ( self ) :
        return "<DomainProperty: %s kind=%s shape=%r>" % ( self.name, self.kind, self.shape )

def _as_property ( prop ) :
    if isinstance( prop, DomainProperty ) :
        return prop
    return DomainProperty( prop )

class DomainClass ( object ) :
    r"""Descriptor of a domain class: its identifier, optional version and the ordered
    persistent properties (identifier and version are never among them)."""
    __slots__ = ( 'name', 'identifier', 'version', 'properties' )

    def __init__ ( self, name, identifier = 'id', version = None, properties = () ) :
        if isinstance( name, type ) :
            name = class_name( name )
        self.name = name
        self.identifier = _as_property( identifier )
        self.version = None if version is None else _as_property( version )
        self.properties = []
        for prop in properties :
            self.add_property( prop )

    def add_property ( self, prop, **kwargs ) :
        if not isinstance( prop, DomainProperty ) :
            prop = DomainProperty( prop, **kwargs )
        if prop.name == self.identifier.name or ( self.version is not None and prop.name == self.version.name ) :
            return self
        self.properties.append( prop )
        return self

    def get_property ( self, name ) :
        for prop in self.properties :
            if prop.name == name :
                return prop
        raise KeyError( name )

    @property
    def property_name ( self ) :
        return property_name( self.name )

    def __repr__ ( self ) :
        return "<DomainClass: %s>" % self.name

class DomainClassRegistry ( object ) :
    r"""In-memory metadata provider keyed by ``module.QualName``."""
    def __init__ ( self, *descriptors ) :
        self.descriptors = {}
        for descriptor in descriptors :
            self.register( descriptor )

    def register ( self, descriptor ) :
        self.descriptors[descriptor.name] = descriptor
        return self

    def is_domain_class ( self, name ) :
        return name in self.descriptors

    def describe ( self, name ) :
        try :
            return self.descriptors[name]
        except KeyError :
            raise ConversionError( "'%s' is not a domain class." % name )

    def __contains__ ( self, name ) :
        return name in self.descriptors

    def __iter__ ( self ) :
        return iter( self.descriptors.values() )

class PropertyAccessor ( object ) :
    def get ( self, instance, name ) :
        try :
            return getattr( instance, name )
        except AttributeError as ex :
            raise ConversionError( "cannot read property '%s' of %s: %s" % ( name, type( instance ).__name__, ex ) ) from ex

class PropertyFilter ( object ) :
    r"""Decides which properties of a domain class are written.  ``include`` (None means
    everything) and ``exclude`` are collections of property names.  Subclass and override
    :meth:`includes`/:meth:`excludes` for per-class rules."""
    def __init__ ( self, include = None, exclude = () ) :
        self.include = None if include is None else frozenset( include )
        self.exclude = frozenset( exclude )

    def includes ( self, domain_class, name ) :
        return self.include is None or name in self.include

    def excludes ( self, domain_class, name ) :
        return name in self.exclude

    def __call__ ( self, domain_class, name ) :
        return self.includes( domain_class, name ) and not self.excludes( domain_class, name )

class EntityProxy ( object ) :
    r"""Mixin for lazy placeholders of domain objects.  Proxies are instances of a
    subclass of the domain class (see :func:`proxy_class`) that know the identifier of the
    object they stand for and a ``loader( identifier )`` to fetch it.  The first read of any
    other attribute loads the target; afterwards reads go to the loaded object."""

    def _proxy_load ( self ) :
        fields = object.__getattribute__( self, '__dict__' )
        if fields['_proxy_target'] is None :
            fields['_proxy_target'] = fields['_proxy_loader']( fields['_proxy_identifier'] )
        return fields['_proxy_target']

    def __getattribute__ ( self, name ) :
        # every public read goes to the target, class attributes included
        if name.startswith( '_proxy_' ) or name.startswith( '__' ) :
            return object.__getattribute__( self, name )
        return getattr( object.__getattribute__( self, '_proxy_load' )(), name )

    def __repr__ ( self ) :
        fields = object.__getattribute__( self, '__dict__' )
        return "<%s: id=%r loaded=%s>" % ( type( self ).__name__, fields['_proxy_identifier'], fields['_proxy_target'] is not None )

_proxy_classes = {}

def proxy_class ( cls ) :
    try :
        return _proxy_classes[cls]
    except KeyError :
        klass = type( cls.__name__ + PROXY_SUFFIX, ( EntityProxy, cls )
            , { '__module__' : cls.__module__, '__qualname__' : cls.__qualname__ + PROXY_SUFFIX } )
        return _proxy_classes.setdefault( cls, klass )

def proxy ( cls, identifier, loader ) :
    r"""A not-yet-loaded stand-in for the ``cls`` instance identified by ``identifier``."""
    klass = proxy_class( cls )
    obj = klass.__new__( klass )
    object.__getattribute__( obj, '__dict__' ).update( _proxy_identifier = identifier, _proxy_loader = loader, _proxy_target = None )
    return obj

class ProxyResolver ( object ) :
    def is_proxy ( self, value ) :
        return isinstance( value, EntityProxy )

    def unwrap ( self, value ) :
        if isinstance( value, EntityProxy ) :
            return value._proxy_load()
        return value

    def proxy_identifier ( self, value ) :
        return object.__getattribute__( value, '__dict__' )['_proxy_identifier']

    def try_proxy_identifier ( self, value ) :
        r"""The identifier of ``value`` if it can be had without loading anything, else None."""
        if not self.is_proxy( value ) :
            return None
        return self.proxy_identifier( value )

class DomainClassMarshaller ( object ) :
    r"""Marshaller for domain objects.  Registered with an :class:`domarsh.XML.XMLConverter`
    it writes the identifier (and optionally the version) as attributes and each included
    persistent property as a child node.  Associations are written as short references
    (``SHALLOW``, the default) or handed back to the converter in full (``DEEP``)."""
    def __init__ ( self, metadata, include_version = False, proxy_resolver = None, property_filter = None, render = SHALLOW, accessor = None ) :
        if render not in ( SHALLOW, DEEP ) :
            raise ValueError( "unknown render mode: %r" % render )
        self.metadata = metadata
        self.include_version = include_version
        self.proxy_resolver = proxy_resolver or ProxyResolver()
        self.property_filter = property_filter or PropertyFilter()
        self.render = render
        self.accessor = accessor or PropertyAccessor()

    def _name ( self, value ) :
        return trim_proxy_suffix( class_name( type( value ) ) )

    def supports ( self, value ) :
        return value is not None and self.metadata.is_domain_class( self._name( value ) )

    def element_name ( self, value ) :
        return self.metadata.describe( self._name( value ) ).property_name

    def marshal_object ( self, value, xml ) :
        domain_class = self.metadata.describe( self._name( value ) )
        logger.debug( "marshal_domain_object", domain_class = domain_class.name, render = self.render )
        get = self.accessor.get
        include = self.property_filter

        identifier = domain_class.identifier
        if include( domain_class, identifier.name ) :
            id_value = get( value, identifier.name )
            if id_value is not None :
                xml.attribute( 'id', str( id_value ) )

        version = domain_class.version
        if self.include_version and version is not None and include( domain_class, version.name ) :
            xml.attribute( 'version', text( get( value, version.name ) ) )

        for prop in domain_class.properties :
            if not include( domain_class, prop.name ) :
                continue
            xml.start_node( prop.name )
            reference = get( value, prop.name )
            if not prop.is_association :
                xml.convert_another( reference )
            elif reference is not None :
                if self.render == DEEP :
                    reference = self.proxy_resolver.unwrap( reference )
                    xml.convert_another( prop.shape.normalize( reference ) )
                else :
                    self._shallow( prop, reference, xml )
            xml.end()

    def _shallow ( self, prop, reference, xml ) :
        referenced = prop.referenced
        # embedded values and enums are always rendered in full
        if referenced is None or prop.embedded or prop.is_enum :
            xml.convert_another( reference )
        elif prop.shape.is_to_one :
            self.short_object( reference, xml, referenced )
        elif prop.shape.is_map :
            for key, element in reference.items() :
                xml.start_node( 'entry' ).attribute( 'key', text( key ) )
                self.short_object( element, xml, referenced )
                xml.end()
        else :
            for element in reference :
                xml.start_node( xml.element_name( element ) )
                self.short_object( element, xml, referenced )
                xml.end()

    def short_object ( self, reference, xml, referenced ) :
        r"""Write only the identifier of ``reference``, preferring what the proxy resolver
        can tell without loading the object."""
        id_value = self.proxy_resolver.try_proxy_identifier( reference )
        if id_value is None :
            id_value = self.accessor.get( reference, referenced.identifier.name )
        xml.attribute( 'id', text( id_value ) )
