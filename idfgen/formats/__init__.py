from idfgen.formats import gen, idf, ipf, metadata
