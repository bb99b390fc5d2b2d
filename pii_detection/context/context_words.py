"""
Context word database — multilingual words that raise or lower confidence
when they appear near a detected entity.

Sources: Presidio context lists plus curated Swiss / EU vocabulary.
Keyed by context type (PERSON_NAME, PHONE_NUMBER, ...) and language.
The table is read-only at runtime; register_context_words() and
reset_context_words() exist for tests and tenant bootstrapping only.
"""
import copy
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from pii_detection.config.constants import CONTEXT_TYPE_ALIASES

POSITIVE = "positive"
NEGATIVE = "negative"


@dataclass(frozen=True)
class ContextWord:
    word: str
    weight: float
    polarity: str = POSITIVE


CONTEXT_WORDS_METADATA: Dict[str, str] = {
    "version": "1.0.0",
    "source": "Presidio v2.2.33 + Swiss/EU curated",
    "last_updated": "2025-12-25T00:00:00Z",
}


def _words(
    positive: Mapping[str, float],
    negative: Optional[Mapping[str, float]] = None,
) -> List[ContextWord]:
    words = [ContextWord(w, weight, POSITIVE) for w, weight in positive.items()]
    words.extend(ContextWord(w, weight, NEGATIVE) for w, weight in (negative or {}).items())
    return words


# =============================================================================
# Default table
# =============================================================================
_DEFAULT_CONTEXT_WORDS: Dict[str, Dict[str, List[ContextWord]]] = {
    "PERSON_NAME": {
        "en": _words(
            positive={
                "mr": 1.0, "mrs": 1.0, "ms": 1.0, "miss": 1.0, "dr": 1.0, "prof": 1.0,
                "sir": 0.9, "madam": 0.9, "name": 0.9, "full name": 1.0,
                "first name": 0.9, "last name": 0.9, "surname": 0.9, "given name": 0.9,
                "contact": 0.8, "attention": 0.8, "attn": 0.8, "dear": 0.7,
                "recipient": 0.8, "by": 0.6, "from": 0.6, "to": 0.6, "author": 0.7,
                "owner": 0.7, "manager": 0.7, "director": 0.7, "signed": 0.6,
                "approved": 0.6, "employee": 0.7, "customer": 0.7, "client": 0.7,
            },
            negative={
                "example.com": 0.9, "test@": 0.8, "lorem": 0.7, "ipsum": 0.7,
                "placeholder": 0.8, "ltd": 1.0, "inc": 1.0, "corp": 1.0, "llc": 1.0,
                "plc": 1.0, "group": 0.9, "holding": 0.9, "technologies": 0.9,
                "services": 0.8, "solutions": 0.8, "street": 0.9, "road": 0.9,
                "avenue": 0.9, "lane": 0.9,
            },
        ),
        "fr": _words(
            positive={
                "m.": 1.0, "mme": 1.0, "mlle": 1.0, "dr": 1.0, "prof": 1.0,
                "monsieur": 1.0, "madame": 1.0, "mademoiselle": 0.9, "nom": 0.9,
                "prénom": 0.9, "nom complet": 1.0, "nom de famille": 0.9,
                "contact": 0.8, "attention": 0.8, "cher": 0.7, "chère": 0.7,
                "destinataire": 0.8, "par": 0.6, "de": 0.5, "à": 0.5, "auteur": 0.7,
                "propriétaire": 0.7, "responsable": 0.7, "directeur": 0.7,
                "signé": 0.6, "approuvé": 0.6, "employé": 0.7, "client": 0.7,
            },
            negative={
                "exemple.com": 0.9, "test@": 0.8, "sa": 1.0, "sàrl": 1.0, "sarl": 1.0,
                "cie": 0.9, "groupe": 0.9, "holding": 0.9, "technologies": 0.9,
                "services": 0.8, "rue": 0.9, "avenue": 0.9, "boulevard": 0.9,
                "chemin": 0.9, "route": 0.9, "place": 0.9, "via": 0.9, "viale": 0.9,
                "piazza": 0.9,
            },
        ),
        "de": _words(
            positive={
                "herr": 1.0, "frau": 1.0, "dr": 1.0, "dr.": 1.0, "prof": 1.0,
                "prof.": 1.0, "sehr geehrter": 1.0, "sehr geehrte": 1.0, "lieber": 0.8,
                "liebe": 0.8, "name": 0.9, "vorname": 0.9, "nachname": 0.9,
                "vollständiger name": 1.0, "familienname": 0.9, "kontakt": 0.8,
                "achtung": 0.8, "empfänger": 0.8, "von": 0.6, "an": 0.6, "autor": 0.7,
                "eigentümer": 0.7, "verantwortlich": 0.7, "direktor": 0.7,
                "unterschrieben": 0.6, "genehmigt": 0.6, "mitarbeiter": 0.7,
                "kunde": 0.7,
            },
            negative={
                "beispiel.com": 0.9, "test@": 0.8, "ag": 1.0, "gmbh": 1.0, "kg": 0.9,
                "ohg": 0.9, "se": 0.9, "gruppe": 0.9, "holding": 0.9,
                "technologien": 0.9, "dienstleistungen": 0.8, "strasse": 0.9,
                "straße": 0.9, "gasse": 0.9, "weg": 0.9, "platz": 0.9, "allee": 0.9,
            },
        ),
        "it": _words(
            positive={
                "sig.": 1.0, "sig": 1.0, "signor": 1.0, "signora": 1.0,
                "signorina": 0.9, "dott.": 1.0, "dott": 1.0, "prof": 1.0,
                "gentile": 0.8, "egregio": 0.9, "caro": 0.7, "cara": 0.7, "nome": 0.9,
                "cognome": 0.9, "nome completo": 1.0, "contatto": 0.8,
                "destinatario": 0.8, "da": 0.5, "autore": 0.7, "titolare": 0.7,
                "responsabile": 0.7, "direttore": 0.7, "firmato": 0.6,
                "dipendente": 0.7, "cliente": 0.7,
            },
            negative={
                "esempio.com": 0.9, "test@": 0.8, "srl": 1.0, "s.r.l.": 1.0,
                "spa": 1.0, "s.p.a.": 1.0, "sagl": 1.0, "gruppo": 0.9, "holding": 0.9,
                "servizi": 0.8, "via": 0.9, "viale": 0.9, "piazza": 0.9, "corso": 0.9,
                "vicolo": 0.9,
            },
        ),
    },
    "PHONE_NUMBER": {
        "en": _words(
            positive={
                "phone": 1.0, "tel": 1.0, "telephone": 1.0, "mobile": 0.9, "cell": 0.9,
                "cellphone": 0.9, "fax": 0.8, "call": 0.7, "contact": 0.7,
                "number": 0.6, "direct": 0.7, "office": 0.7, "home": 0.6, "work": 0.6,
            },
            negative={"order": 0.6, "invoice": 0.6, "reference": 0.6},
        ),
        "fr": _words(
            positive={
                "téléphone": 1.0, "tél": 1.0, "tél.": 1.0, "mobile": 0.9,
                "portable": 0.9, "natel": 0.9, "fax": 0.8, "appeler": 0.7,
                "contact": 0.7, "numéro": 0.6, "direct": 0.7, "bureau": 0.7,
                "domicile": 0.6, "travail": 0.6,
            },
            negative={"commande": 0.6, "facture": 0.6, "référence": 0.6},
        ),
        "de": _words(
            positive={
                "telefon": 1.0, "tel": 1.0, "tel.": 1.0, "mobil": 0.9, "handy": 0.9,
                "natel": 0.9, "fax": 0.8, "anrufen": 0.7, "kontakt": 0.7,
                "nummer": 0.6, "direkt": 0.7, "büro": 0.7, "privat": 0.6,
                "geschäftlich": 0.6,
            },
            negative={"bestellung": 0.6, "rechnung": 0.6, "referenz": 0.6},
        ),
        "it": _words(
            positive={
                "telefono": 1.0, "tel": 1.0, "tel.": 1.0, "cellulare": 0.9,
                "natel": 0.9, "fax": 0.8, "chiamare": 0.7, "contatto": 0.7,
                "numero": 0.6, "diretto": 0.7, "ufficio": 0.7, "casa": 0.6,
            },
            negative={"ordine": 0.6, "fattura": 0.6, "riferimento": 0.6},
        ),
    },
    "EMAIL": {
        "en": _words(
            positive={
                "email": 1.0, "e-mail": 1.0, "mail": 0.8, "contact": 0.7,
                "address": 0.6, "send": 0.6, "write": 0.6, "message": 0.6, "reply": 0.6,
            },
            negative={
                "example.com": 0.9, "test.com": 0.9, "domain.com": 0.8,
                "placeholder": 0.8,
            },
        ),
        "fr": _words(
            positive={
                "courriel": 1.0, "e-mail": 1.0, "email": 1.0, "mail": 0.8,
                "contact": 0.7, "adresse": 0.6, "envoyer": 0.6, "écrire": 0.6,
                "message": 0.6, "répondre": 0.6,
            },
            negative={"exemple.com": 0.9, "test.com": 0.9},
        ),
        "de": _words(
            positive={
                "email": 1.0, "e-mail": 1.0, "mail": 0.8, "kontakt": 0.7,
                "adresse": 0.6, "senden": 0.6, "schreiben": 0.6, "nachricht": 0.6,
                "antworten": 0.6,
            },
            negative={"beispiel.com": 0.9, "test.com": 0.9},
        ),
        "it": _words(
            positive={
                "email": 1.0, "e-mail": 1.0, "posta elettronica": 1.0, "mail": 0.8,
                "contatto": 0.7, "indirizzo": 0.6, "inviare": 0.6, "scrivere": 0.6,
                "messaggio": 0.6, "rispondere": 0.6,
            },
            negative={"esempio.com": 0.9, "test.com": 0.9},
        ),
    },
    "ADDRESS": {
        "en": _words(positive={
            "address": 1.0, "street": 0.9, "road": 0.8, "avenue": 0.8,
            "boulevard": 0.8, "lane": 0.7, "postal": 0.8, "zip": 0.8, "city": 0.7,
            "town": 0.7, "location": 0.6, "deliver": 0.7, "ship": 0.7,
            "mail to": 0.8, "residence": 0.8, "domicile": 0.8,
        }),
        "fr": _words(positive={
            "adresse": 1.0, "rue": 0.9, "avenue": 0.8, "chemin": 0.8,
            "boulevard": 0.8, "route": 0.7, "postal": 0.8, "code": 0.6, "npa": 0.9,
            "ville": 0.7, "localité": 0.7, "livrer": 0.7, "livraison": 0.7,
            "domicile": 0.8, "résidence": 0.8,
        }),
        "de": _words(positive={
            "adresse": 1.0, "strasse": 0.9, "straße": 0.9, "weg": 0.8, "platz": 0.8,
            "allee": 0.8, "postleitzahl": 0.9, "plz": 0.9, "stadt": 0.7, "ort": 0.7,
            "ortschaft": 0.7, "liefern": 0.7, "lieferung": 0.7, "wohnort": 0.8,
            "anschrift": 0.9,
        }),
        "it": _words(positive={
            "indirizzo": 1.0, "via": 0.9, "viale": 0.8, "piazza": 0.8, "corso": 0.8,
            "cap": 0.9, "codice postale": 0.9, "città": 0.7, "località": 0.7,
            "consegna": 0.7, "domicilio": 0.8, "residenza": 0.8,
        }),
    },
    "IBAN": {
        "en": _words(positive={
            "iban": 1.0, "account": 0.8, "bank": 0.8, "bank account": 1.0,
            "transfer": 0.7, "payment": 0.7, "swift": 0.8, "bic": 0.8, "wire": 0.7,
            "deposit": 0.7,
        }),
        "fr": _words(positive={
            "iban": 1.0, "compte": 0.8, "compte bancaire": 1.0, "banque": 0.8,
            "virement": 0.7, "paiement": 0.7, "swift": 0.8, "bic": 0.8,
            "versement": 0.7,
        }),
        "de": _words(positive={
            "iban": 1.0, "konto": 0.8, "bankkonto": 1.0, "bank": 0.8,
            "überweisung": 0.7, "zahlung": 0.7, "swift": 0.8, "bic": 0.8,
            "einzahlung": 0.7,
        }),
        "it": _words(positive={
            "iban": 1.0, "conto": 0.8, "conto bancario": 1.0, "banca": 0.8,
            "bonifico": 0.7, "pagamento": 0.7, "swift": 0.8, "bic": 0.8,
            "versamento": 0.7,
        }),
    },
    "SWISS_AVS": {
        "en": _words(positive={
            "avs": 1.0, "ahv": 1.0, "social security": 0.9, "social insurance": 0.9,
            "insurance number": 0.8, "ssn": 0.7,
        }),
        "fr": _words(positive={
            "avs": 1.0, "numéro avs": 1.0, "n° avs": 1.0, "sécurité sociale": 0.9,
            "assurance sociale": 0.9, "numéro d'assurance": 0.8,
        }),
        "de": _words(positive={
            "ahv": 1.0, "ahv-nummer": 1.0, "ahv-nr": 1.0, "sozialversicherung": 0.9,
            "versicherungsnummer": 0.8, "svn": 0.7,
        }),
        "it": _words(positive={
            "avs": 1.0, "numero avs": 1.0, "assicurazione sociale": 0.9,
            "sicurezza sociale": 0.9, "numero d'assicurazione": 0.8,
        }),
    },
    "SWISS_POSTAL_CODE": {
        "en": _words(positive={
            "postal": 0.9, "postal code": 1.0, "zip": 0.8, "zip code": 1.0,
            "npa": 0.9, "postcode": 0.9,
        }),
        "fr": _words(positive={
            "postal": 0.9, "code postal": 1.0, "npa": 1.0, "localité": 0.7,
        }),
        "de": _words(positive={
            "postleitzahl": 1.0, "plz": 1.0, "ort": 0.7, "ortschaft": 0.7,
        }),
        "it": _words(positive={
            "codice postale": 1.0, "cap": 1.0, "npa": 1.0, "località": 0.7,
        }),
    },
    "DATE": {
        "en": _words(
            positive={
                "date": 0.8, "born": 0.9, "birth": 0.9, "birthday": 0.9, "dob": 1.0,
                "date of birth": 1.0, "issued": 0.7, "expires": 0.7, "expiry": 0.7,
                "valid": 0.6, "effective": 0.6,
            },
            negative={"invoice date": 0.4, "order date": 0.4, "due date": 0.4},
        ),
        "fr": _words(
            positive={
                "date": 0.8, "né": 0.9, "née": 0.9, "naissance": 1.0,
                "date de naissance": 1.0, "émis": 0.7, "expire": 0.7,
                "expiration": 0.7, "valide": 0.6,
            },
            negative={"date de facture": 0.4, "date de commande": 0.4, "échéance": 0.4},
        ),
        "de": _words(
            positive={
                "datum": 0.8, "geboren": 0.9, "geburt": 0.9, "geburtsdatum": 1.0,
                "ausgestellt": 0.7, "gültig": 0.6, "ablauf": 0.7,
            },
            negative={
                "rechnungsdatum": 0.4, "bestelldatum": 0.4, "fälligkeitsdatum": 0.4,
            },
        ),
        "it": _words(
            positive={
                "data": 0.8, "nato": 0.9, "nata": 0.9, "nascita": 1.0,
                "data di nascita": 1.0, "rilasciato": 0.7, "scadenza": 0.7,
                "valido": 0.6,
            },
            negative={"data fattura": 0.4, "data ordine": 0.4},
        ),
    },
    "ORGANIZATION": {
        "en": _words(positive={
            "company": 0.9, "corporation": 0.9, "organization": 0.9,
            "organisation": 0.9, "firm": 0.8, "enterprise": 0.8, "business": 0.7,
            "ltd": 0.9, "inc": 0.9, "corp": 0.9, "llc": 0.9, "plc": 0.9,
        }),
        "fr": _words(positive={
            "société": 0.9, "entreprise": 0.9, "organisation": 0.9, "firme": 0.8,
            "sa": 0.9, "sàrl": 0.9, "sarl": 0.9, "cie": 0.8,
        }),
        "de": _words(positive={
            "firma": 0.9, "unternehmen": 0.9, "gesellschaft": 0.9,
            "organisation": 0.9, "gmbh": 1.0, "ag": 1.0, "kg": 0.9, "ohg": 0.9,
        }),
        "it": _words(positive={
            "società": 0.9, "azienda": 0.9, "impresa": 0.8, "ditta": 0.8,
            "srl": 1.0, "spa": 1.0, "sagl": 1.0,
        }),
    },
}

_context_words: Dict[str, Dict[str, List[ContextWord]]] = copy.deepcopy(_DEFAULT_CONTEXT_WORDS)


# =============================================================================
# Lookups
# =============================================================================

def context_type_for(entity_type: str) -> str:
    """Map a pipeline entity type to its context-word table key."""
    return CONTEXT_TYPE_ALIASES.get(entity_type, entity_type)


def get_context_words(entity_type: str, language: str) -> List[ContextWord]:
    """Return a copy of the words for (type, language); [] when unknown."""
    by_language = _context_words.get(entity_type)
    if not by_language:
        return []
    return list(by_language.get(language.lower(), []))


def get_context_word_strings(entity_type: str, language: str) -> List[str]:
    return [cw.word for cw in get_context_words(entity_type, language)]


def get_all_context_words(entity_type: str) -> List[ContextWord]:
    """All words for a type across languages, deduplicated by lowercase word."""
    seen = set()
    result: List[ContextWord] = []
    for words in _context_words.get(entity_type, {}).values():
        for cw in words:
            key = cw.word.lower()
            if key not in seen:
                seen.add(key)
                result.append(cw)
    return result


def get_positive_context_words(entity_type: str, language: str) -> List[ContextWord]:
    return [cw for cw in get_context_words(entity_type, language) if cw.polarity == POSITIVE]


def get_negative_context_words(entity_type: str, language: str) -> List[ContextWord]:
    return [cw for cw in get_context_words(entity_type, language) if cw.polarity == NEGATIVE]


def get_metadata() -> Dict[str, str]:
    return dict(CONTEXT_WORDS_METADATA)


def get_supported_entity_types() -> List[str]:
    return list(_context_words.keys())


def get_supported_languages(entity_type: str) -> List[str]:
    return list(_context_words.get(entity_type, {}).keys())


# =============================================================================
# Test / bootstrap hooks
# =============================================================================

def register_context_words(entity_type: str, language: str, words: List[ContextWord]) -> None:
    """Replace the words for (type, language)."""
    _context_words.setdefault(entity_type, {})[language.lower()] = list(words)


def reset_context_words() -> None:
    """Restore the default table."""
    _context_words.clear()
    _context_words.update(copy.deepcopy(_DEFAULT_CONTEXT_WORDS))
