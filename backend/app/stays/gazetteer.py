"""
Lookup data for nationality / origin normalization.

Everything here is plain data. Keys are written in lowercase Spanish (accents
allowed) and folded with ``fold_key`` when the module loads, so lookups only
ever compare accent-free, lowercase text. The resolution algorithm that walks
these tables lives in ``backend.app.stays.fields``.
"""

from __future__ import annotations

import re
import unicodedata
from types import MappingProxyType
from typing import Dict, Iterable, Mapping

PERU = "Perú"
OTHER = "Otro"

_EDGE_PUNCTUATION = " \t\r\n.,;:()[]{}\"'"


def fold_key(value: str) -> str:
    text = unicodedata.normalize("NFKD", value or "")
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"\s+", " ", text.lower())
    return text.strip(_EDGE_PUNCTUATION)


def _frozen(mapping: Dict[str, str]) -> Mapping[str, str]:
    return MappingProxyType({fold_key(key): value for key, value in mapping.items()})


def _to_country(keys: Iterable[str], country: str) -> Dict[str, str]:
    return {key: country for key in keys}


# -------------------------
# Peru: departments, provinces and cities -> department
# -------------------------

_PERU_DEPARTMENTS = (
    "Amazonas", "Ancash", "Apurímac", "Arequipa", "Ayacucho", "Cajamarca",
    "Callao", "Cusco", "Huancavelica", "Huánuco", "Ica", "Junín",
    "La Libertad", "Lambayeque", "Lima", "Loreto", "Madre de Dios",
    "Moquegua", "Pasco", "Piura", "Puno", "San Martín", "Tacna", "Tumbes",
    "Ucayali",
)

_PERU_PLACES: Dict[str, str] = {
    # Amazonas
    "chachapoyas": "Amazonas", "bagua": "Amazonas", "bongara": "Amazonas",
    "condorcanqui": "Amazonas", "luya": "Amazonas",
    "rodriguez de mendoza": "Amazonas", "utcubamba": "Amazonas",
    # Ancash
    "huaraz": "Ancash", "aija": "Ancash", "antonio raymondi": "Ancash",
    "bolognesi": "Ancash", "carhuaz": "Ancash", "carlos f. fitzcarrald": "Ancash",
    "casma": "Ancash", "corongo": "Ancash", "huari": "Ancash", "huarmey": "Ancash",
    "huaylas": "Ancash", "mariscal luzuriaga": "Ancash", "ocros": "Ancash",
    "pallasca": "Ancash", "pomabamba": "Ancash", "recuay": "Ancash",
    "santa": "Ancash", "sihuas": "Ancash", "yungay": "Ancash", "chimbote": "Ancash",
    # Apurímac
    "abancay": "Apurímac", "andahuaylas": "Apurímac", "antabamba": "Apurímac",
    "aymaraes": "Apurímac", "cotabambas": "Apurímac", "chincheros": "Apurímac",
    "grau": "Apurímac",
    # Arequipa
    "camana": "Arequipa", "caraveli": "Arequipa", "castilla": "Arequipa",
    "caylloma": "Arequipa", "condesuyos": "Arequipa", "islay": "Arequipa",
    "la union": "Arequipa", "mollendo": "Arequipa",
    # Ayacucho
    "huamanga": "Ayacucho", "cangallo": "Ayacucho", "huanca sancos": "Ayacucho",
    "huanta": "Ayacucho", "la mar": "Ayacucho", "lucanas": "Ayacucho",
    "parinacochas": "Ayacucho", "paucar del sara sara": "Ayacucho",
    "sucre": "Ayacucho", "victor fajardo": "Ayacucho", "vilcas huaman": "Ayacucho",
    # Cajamarca
    "cajabamba": "Cajamarca", "celendin": "Cajamarca", "chota": "Cajamarca",
    "contumaza": "Cajamarca", "cutervo": "Cajamarca", "hualgayoc": "Cajamarca",
    "jaen": "Cajamarca", "san ignacio": "Cajamarca", "san marcos": "Cajamarca",
    "san miguel": "Cajamarca", "san pablo": "Cajamarca", "santa cruz": "Cajamarca",
    # Cusco
    "urubamba": "Cusco", "quispicanchi": "Cusco", "calca": "Cusco",
    "sicuani": "Cusco", "canchis": "Cusco", "la convencion": "Cusco",
    # Huancavelica
    "angaraes": "Huancavelica", "castrovirreyna": "Huancavelica",
    "churcampa": "Huancavelica", "huaytara": "Huancavelica", "tayacaja": "Huancavelica",
    # Huánuco
    "huamalies": "Huánuco", "leoncio prado": "Huánuco", "tingo maria": "Huánuco",
    "pachitea": "Huánuco", "puerto inca": "Huánuco", "lauricocha": "Huánuco",
    "yarowilca": "Huánuco", "huacaybamba": "Huánuco",
    # Ica
    "chincha": "Ica", "chincha alta": "Ica", "chincha baja": "Ica",
    "nazca": "Ica", "nasca": "Ica", "palpa": "Ica", "pisco": "Ica",
    # Junín
    "huancayo": "Junín", "concepcion": "Junín", "jauja": "Junín",
    "satipo": "Junín", "tarma": "Junín", "yauli": "Junín", "chupaca": "Junín",
    "la oroya": "Junín", "chanchamayo": "Junín",
    # La Libertad
    "trujillo": "La Libertad", "ascope": "La Libertad", "bolivar": "La Libertad",
    "chepen": "La Libertad", "julcan": "La Libertad", "otuzco": "La Libertad",
    "pacasmayo": "La Libertad", "pataz": "La Libertad",
    "sanchez carrion": "La Libertad", "santiago de chuco": "La Libertad",
    "gran chimu": "La Libertad", "viru": "La Libertad", "guadalupe": "La Libertad",
    # Lambayeque
    "chiclayo": "Lambayeque", "ferreñafe": "Lambayeque",
    # Lima
    "barranca": "Lima", "cajatambo": "Lima", "canta": "Lima", "cañete": "Lima",
    "huaral": "Lima", "huarochiri": "Lima", "huaura": "Lima", "oyon": "Lima",
    "yauyos": "Lima", "huacho": "Lima", "chancay": "Lima", "paramonga": "Lima",
    "pativilca": "Lima", "supe": "Lima", "hualmay": "Lima",
    # Loreto
    "maynas": "Loreto", "alto amazonas": "Loreto",
    "mariscal ramon castilla": "Loreto", "requena": "Loreto",
    "datem del marañon": "Loreto", "putumayo": "Loreto", "iquitos": "Loreto",
    "yurimaguas": "Loreto", "lagunas": "Loreto",
    # Madre de Dios
    "tambopata": "Madre de Dios", "manu": "Madre de Dios",
    "tahuamanu": "Madre de Dios", "puerto maldonado": "Madre de Dios",
    # Moquegua
    "mariscal nieto": "Moquegua", "general sanchez cerro": "Moquegua", "ilo": "Moquegua",
    # Pasco
    "daniel alcides carrion": "Pasco", "oxapampa": "Pasco", "cerro de pasco": "Pasco",
    # Piura
    "ayabaca": "Piura", "huancabamba": "Piura", "morropon": "Piura",
    "paita": "Piura", "sullana": "Piura", "talara": "Piura", "sechura": "Piura",
    # Puno
    "azangaro": "Puno", "carabaya": "Puno", "chucuito": "Puno", "el collao": "Puno",
    "huancane": "Puno", "lampa": "Puno", "melgar": "Puno", "moho": "Puno",
    "san antonio de putina": "Puno", "san roman": "Puno", "sandia": "Puno",
    "yunguyo": "Puno", "juliaca": "Puno",
    # San Martín
    "moyobamba": "San Martín", "bellavista": "San Martín", "el dorado": "San Martín",
    "huallaga": "San Martín", "lamas": "San Martín", "mariscal caceres": "San Martín",
    "picota": "San Martín", "tocache": "San Martín", "rioja": "San Martín",
    "tarapoto": "San Martín",
    # Tacna / Tumbes / Ucayali
    "candarave": "Tacna", "jorge basadre": "Tacna", "tarata": "Tacna",
    "contralmirante villar": "Tumbes", "zarumilla": "Tumbes",
    "pucallpa": "Ucayali", "coronel portillo": "Ucayali",
}

PERU_LOCATIONS: Mapping[str, str] = _frozen(
    {**{name.lower(): name for name in _PERU_DEPARTMENTS}, **_PERU_PLACES}
)


# -------------------------
# Nationalities, demonyms, capitals and large cities -> country
# -------------------------

_NATIONALITY_ALIASES: Dict[str, str] = {
    **_to_country(("peruana", "peruano", "peru", "peruvian"), PERU),
    # South America
    **_to_country(("argentina", "argentino", "buenos aires", "rosario", "mendoza"), "Argentina"),
    **_to_country(("boliviana", "boliviano", "bolivia", "la paz", "cochabamba", "sucre bolivia"), "Bolivia"),
    **_to_country(("brasileña", "brasileño", "brasilera", "brasilero", "brasil", "brazil",
                   "brazilian", "sao paulo", "rio de janeiro", "brasilia"), "Brasil"),
    **_to_country(("chilena", "chileno", "chile", "chilean", "santiago de chile", "valparaiso",
                   "arica", "iquique", "antofagasta"), "Chile"),
    **_to_country(("colombiana", "colombiano", "colombia", "colombian", "bogota",
                   "medellin", "cali", "barranquilla"), "Colombia"),
    **_to_country(("ecuatoriana", "ecuatoriano", "ecuador", "quito", "guayaquil",
                   "cuenca", "loja"), "Ecuador"),
    **_to_country(("paraguaya", "paraguayo", "paraguay", "asuncion"), "Paraguay"),
    **_to_country(("uruguaya", "uruguayo", "uruguay", "montevideo"), "Uruguay"),
    **_to_country(("venezolana", "venezolano", "venezuela", "venezuelan", "caracas",
                   "maracaibo", "valencia venezuela"), "Venezuela"),
    # Central America and the Caribbean
    **_to_country(("mexicana", "mexicano", "mexico", "mexican", "ciudad de mexico",
                   "guadalajara", "monterrey"), "México"),
    **_to_country(("panameña", "panameño", "panama"), "Panamá"),
    **_to_country(("costarricense", "costa rica", "san jose de costa rica"), "Costa Rica"),
    **_to_country(("nicaragüense", "nicaragua", "managua"), "Nicaragua"),
    **_to_country(("hondureña", "hondureño", "honduras", "tegucigalpa"), "Honduras"),
    **_to_country(("salvadoreña", "salvadoreño", "el salvador"), "El Salvador"),
    **_to_country(("guatemalteca", "guatemalteco", "guatemala"), "Guatemala"),
    **_to_country(("beliceña", "beliceño", "belice"), "Belice"),
    **_to_country(("cubana", "cubano", "cuba", "la habana"), "Cuba"),
    **_to_country(("dominicana", "dominicano", "republica dominicana", "santo domingo"),
                  "República Dominicana"),
    **_to_country(("puertorriqueña", "puertorriqueño", "puerto rico"), "Puerto Rico"),
    # North America
    **_to_country(("estadounidense", "americano", "americana", "norteamericano",
                   "norteamericana", "estados unidos", "united states", "american",
                   "nueva york", "new york", "miami", "los angeles", "chicago",
                   "washington", "san francisco", "houston"), "Estados Unidos"),
    **_to_country(("canadiense", "canada", "canadian", "toronto", "montreal",
                   "vancouver", "ottawa"), "Canadá"),
    # Europe
    **_to_country(("española", "español", "españa", "spain", "spanish", "madrid",
                   "barcelona", "sevilla", "bilbao"), "España"),
    **_to_country(("francesa", "frances", "francia", "french", "paris", "lyon",
                   "marsella"), "Francia"),
    **_to_country(("italiana", "italiano", "italia", "italy", "italian", "roma",
                   "milan", "napoles", "florencia", "turin"), "Italia"),
    **_to_country(("alemana", "aleman", "alemania", "germany", "german", "berlin",
                   "munich", "hamburgo", "frankfurt"), "Alemania"),
    **_to_country(("inglesa", "ingles", "britanica", "britanico", "british",
                   "reino unido", "inglaterra", "england", "escocia", "gales",
                   "londres", "london", "manchester"), "Reino Unido"),
    **_to_country(("portuguesa", "portugues", "portugal", "lisboa", "oporto"), "Portugal"),
    **_to_country(("holandesa", "holandes", "holanda", "paises bajos", "netherlands",
                   "dutch", "amsterdam", "rotterdam"), "Países Bajos"),
    **_to_country(("belga", "belgica", "belgium", "bruselas"), "Bélgica"),
    **_to_country(("sueca", "sueco", "suecia", "sweden", "estocolmo"), "Suecia"),
    **_to_country(("noruega", "noruego", "norway", "oslo"), "Noruega"),
    **_to_country(("danes", "danesa", "dinamarca", "denmark", "copenhague"), "Dinamarca"),
    **_to_country(("finlandesa", "finlandes", "finlandia", "finland", "helsinki"), "Finlandia"),
    **_to_country(("irlandesa", "irlandes", "irlanda", "ireland", "dublin"), "Irlanda"),
    **_to_country(("austriaca", "austriaco", "austria", "viena"), "Austria"),
    **_to_country(("suiza", "suizo", "switzerland", "zurich", "ginebra", "berna"), "Suiza"),
    **_to_country(("polaca", "polaco", "polonia", "poland", "varsovia"), "Polonia"),
    **_to_country(("checa", "checo", "republica checa", "praga"), "República Checa"),
    **_to_country(("rusa", "ruso", "rusia", "russia", "moscu"), "Rusia"),
    **_to_country(("ucraniana", "ucraniano", "ucrania", "ukraine", "kiev"), "Ucrania"),
    # Asia
    **_to_country(("china", "chino", "pekin", "beijing", "shanghai", "canton"), "China"),
    **_to_country(("japonesa", "japones", "japon", "japan", "tokio", "osaka"), "Japón"),
    **_to_country(("coreana", "coreano", "corea", "corea del sur", "korea", "seul"),
                  "Corea del Sur"),
    **_to_country(("norcoreano", "norcoreana", "corea del norte"), "Corea del Norte"),
    **_to_country(("india", "indio", "hindu", "nueva delhi", "bombay", "mumbai"), "India"),
    **_to_country(("tailandesa", "tailandes", "tailandia", "bangkok"), "Tailandia"),
    **_to_country(("filipina", "filipino", "filipinas", "manila"), "Filipinas"),
    **_to_country(("vietnamita", "vietnam", "hanoi"), "Vietnam"),
    **_to_country(("indonesia", "indonesio", "yakarta"), "Indonesia"),
    # Oceania
    **_to_country(("australiana", "australiano", "australia", "sidney", "sydney",
                   "melbourne"), "Australia"),
    **_to_country(("neozelandesa", "neozelandes", "nueva zelanda", "auckland"), "Nueva Zelanda"),
    # Middle East
    **_to_country(("libanesa", "libanes", "libano", "beirut"), "Líbano"),
    **_to_country(("sirio", "siria", "damasco"), "Siria"),
    **_to_country(("iraqui", "irak", "bagdad"), "Irak"),
    **_to_country(("irani", "iran", "teheran"), "Irán"),
    **_to_country(("israeli", "israel", "jerusalen", "tel aviv"), "Israel"),
    # Regions that do not name a country
    **_to_country(("arabe", "sudamerica", "sudamericano", "sudamericana",
                   "latinoamericano", "latinoamericana", "africano", "africana",
                   "asiatico", "asiatica", "europeo", "europea", "oceanico",
                   "oceanica", "extranjero", "extranjera"), OTHER),
}

# Peruvian places are domestic origins: nationality is Peru.
_NATIONALITY_ALIASES.update({place: PERU for place in PERU_LOCATIONS})


# -------------------------
# Secondary country-name dictionary
# -------------------------

_COUNTRY_NAMES = (
    "Afganistán", "Albania", "Andorra", "Angola", "Antigua y Barbuda",
    "Arabia Saudita", "Argelia", "Armenia", "Azerbaiyán", "Bahamas", "Baréin",
    "Bangladesh", "Barbados", "Bielorrusia", "Benín", "Bután", "Botsuana",
    "Brunéi", "Burkina Faso", "Burundi", "Cabo Verde", "Camboya", "Camerún",
    "República Centroafricana", "Chad", "Comoras", "Congo", "Costa de Marfil",
    "Croacia", "Yibuti", "Dominica", "Egipto", "Eritrea", "Eslovaquia",
    "Eslovenia", "Estonia", "Esuatini", "Etiopía", "Fiyi", "Gabón", "Gambia",
    "Georgia", "Ghana", "Granada", "Grecia", "Guinea", "Guinea Ecuatorial",
    "Guinea-Bisáu", "Guyana", "Haití", "Hungría", "Islandia", "Jamaica",
    "Jordania", "Kazajistán", "Kenia", "Kirguistán", "Kiribati", "Kuwait",
    "Laos", "Lesoto", "Letonia", "Liberia", "Libia", "Liechtenstein",
    "Lituania", "Luxemburgo", "Madagascar", "Malasia", "Malaui", "Maldivas",
    "Malí", "Malta", "Marruecos", "Islas Marshall", "Mauritania", "Mauricio",
    "Micronesia", "Moldavia", "Mónaco", "Mongolia", "Montenegro", "Mozambique",
    "Birmania", "Namibia", "Nauru", "Nepal", "Níger", "Nigeria",
    "Macedonia del Norte", "Omán", "Pakistán", "Palaos", "Papúa Nueva Guinea",
    "Qatar", "Rumania", "Ruanda", "Samoa", "San Cristóbal y Nieves",
    "San Marino", "San Vicente y las Granadinas", "Santa Lucía",
    "Santo Tomé y Príncipe", "Senegal", "Serbia", "Seychelles", "Sierra Leona",
    "Singapur", "Islas Salomón", "Somalia", "Sudáfrica", "Sudán",
    "Sudán del Sur", "Surinam", "Tayikistán", "Tanzania", "Timor Oriental",
    "Togo", "Tonga", "Trinidad y Tobago", "Túnez", "Turquía", "Turkmenistán",
    "Tuvalu", "Uganda", "Emiratos Árabes Unidos", "Uzbekistán", "Vanuatu",
    "Ciudad del Vaticano", "Yemen", "Zambia", "Zimbabue",
)

COUNTRY_NAMES: Mapping[str, str] = _frozen({name: name for name in _COUNTRY_NAMES})


# -------------------------
# Abbreviations (matched with and without dots)
# -------------------------

ABBREVIATIONS: Mapping[str, str] = _frozen({
    "eeuu": "Estados Unidos",
    "ee uu": "Estados Unidos",
    "usa": "Estados Unidos",
    "us": "Estados Unidos",
    "eua": "Estados Unidos",
    "uk": "Reino Unido",
    "gb": "Reino Unido",
    "rd": "República Dominicana",
    "rep dominicana": "República Dominicana",
    "rep checa": "República Checa",
    "uae": "Emiratos Árabes Unidos",
    "eau": "Emiratos Árabes Unidos",
    "per": PERU,
    "pe": PERU,
    "arg": "Argentina",
    "bol": "Bolivia",
    "col": "Colombia",
    "ven": "Venezuela",
    "ecu": "Ecuador",
    "chi": "Chile",
    "mex": "México",
    "bra": "Brasil",
    "esp": "España",
    "fra": "Francia",
    "ita": "Italia",
    "ale": "Alemania",
})


def _with_canonical_names(aliases: Dict[str, str]) -> Mapping[str, str]:
    canonical = set(aliases.values()) | set(COUNTRY_NAMES.values()) | set(ABBREVIATIONS.values())
    merged = {fold_key(key): value for key, value in aliases.items()}
    for name in canonical:
        merged.setdefault(fold_key(name), name)
    return MappingProxyType(merged)


NATIONALITY_ALIASES: Mapping[str, str] = _with_canonical_names(_NATIONALITY_ALIASES)

# Tokens never worth retrying on their own when splitting free text.
TRIVIAL_TOKENS = frozenset({
    "de", "del", "la", "las", "los", "el", "y", "e", "en", "the", "of",
    "ciudad", "city", "provincia", "departamento", "region", "distrito",
    "pais", "nacionalidad", "nacional",
})
