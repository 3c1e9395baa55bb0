# agency_api/utils/postcodes_be.py
# Belgian postcodes of the main municipalities, used to prefill the city field

POSTCODES = {
    "1000": "Brussel",
    "1020": "Laken",
    "1030": "Schaarbeek",
    "1040": "Etterbeek",
    "1050": "Elsene",
    "1060": "Sint-Gillis",
    "1070": "Anderlecht",
    "1080": "Sint-Jans-Molenbeek",
    "1081": "Koekelberg",
    "1082": "Sint-Agatha-Berchem",
    "1083": "Ganshoren",
    "1090": "Jette",
    "1120": "Neder-Over-Heembeek",
    "1130": "Haren",
    "1140": "Evere",
    "1150": "Sint-Pieters-Woluwe",
    "1160": "Oudergem",
    "1170": "Watermaal-Bosvoorde",
    "1180": "Ukkel",
    "1190": "Vorst",
    "1200": "Sint-Lambrechts-Woluwe",
    "1210": "Sint-Joost-ten-Node",
    "1300": "Waver",
    "1400": "Nijvel",
    "1500": "Halle",
    "1600": "Sint-Pieters-Leeuw",
    "1700": "Dilbeek",
    "1800": "Vilvoorde",
    "1930": "Zaventem",
    "2000": "Antwerpen",
    "2018": "Antwerpen",
    "2020": "Antwerpen",
    "2030": "Antwerpen",
    "2040": "Antwerpen",
    "2050": "Antwerpen",
    "2060": "Antwerpen",
    "2100": "Deurne",
    "2140": "Borgerhout",
    "2170": "Merksem",
    "2200": "Herentals",
    "2300": "Turnhout",
    "2400": "Mol",
    "2500": "Lier",
    "2600": "Berchem",
    "2800": "Mechelen",
    "2900": "Schoten",
    "3000": "Leuven",
    "3001": "Heverlee",
    "3010": "Kessel-Lo",
    "3200": "Aarschot",
    "3300": "Tienen",
    "3500": "Hasselt",
    "3580": "Beringen",
    "3600": "Genk",
    "3700": "Tongeren",
    "3800": "Sint-Truiden",
    "3900": "Pelt",
    "4000": "Luik",
    "4800": "Verviers",
    "5000": "Namen",
    "6000": "Charleroi",
    "7000": "Bergen",
    "7500": "Doornik",
    "8000": "Brugge",
    "8200": "Sint-Andries",
    "8300": "Knokke-Heist",
    "8400": "Oostende",
    "8500": "Kortrijk",
    "8600": "Diksmuide",
    "8700": "Tielt",
    "8800": "Roeselare",
    "8900": "Ieper",
    "9000": "Gent",
    "9030": "Mariakerke",
    "9040": "Sint-Amandsberg",
    "9050": "Gentbrugge",
    "9100": "Sint-Niklaas",
    "9200": "Dendermonde",
    "9300": "Aalst",
    "9400": "Ninove",
    "9500": "Geraardsbergen",
    "9600": "Ronse",
    "9700": "Oudenaarde",
    "9800": "Deinze",
    "9900": "Eeklo",
}


def city_for_postcode(postcode: str) -> str | None:
    return POSTCODES.get(postcode.strip())
