# exports
from idfgen import convert, geometry, logging
from idfgen.features import Feature, FeatureCollection, FeatureType
from idfgen.formats import gen, idf, ipf
from idfgen.grid import Grid

__version__ = "0.1.0"
