# ruff: noqa: E501
"""Small but realistic statement exports used across the test suite."""

from __future__ import annotations

import textwrap


def _dedent(s: str) -> str:
    # Keep internal newlines, but normalize indentation for readability.
    return textwrap.dedent(s).lstrip("\n")


# ING Girokonto "Umsatzanzeige" export. Rows (document order): REWE, the
# credit-card settlement to DKB, a truncated row, salary, rent, and the
# period-closing balance row.
ING_CSV = _dedent(
    """
    Umsatzanzeige;Datei erstellt am: 02.01.2024 10:00
    ;Letztes Update: aktuell

    IBAN;DE12 5001 0517 0123 4567 89
    Kontoname;Girokonto
    Bank;ING
    Kunde;Max Mustermann
    Zeitraum;01.12.2023 - 31.12.2023
    Saldo;1.234,56;EUR

    Sortierung;Datum absteigend

    In der CSV-Datei finden Sie alle bereits gebuchten Umsätze.

    Buchung;Wertstellungsdatum;Auftraggeber/Empfänger;Buchungstext;Verwendungszweck;Saldo;Währung;Betrag;Währung
    28.12.2023;28.12.2023;REWE Markt GmbH;Lastschrift;REWE SAGT DANKE 12345;1.234,56;EUR;-45,67;EUR
    27.12.2023;27.12.2023;DKB AG;Lastschrift;Kreditkarte 4930 Abrechnung;1.280,23;EUR;-500,00;EUR
    15.12.2023;15.12.2023;Kaputt
    01.12.2023;01.12.2023;Arbeitgeber GmbH;Gutschrift;Gehalt November;1.780,23;EUR;2.500,00;EUR
    01.12.2023;01.12.2023;Hausverwaltung Schmidt;Dauerauftrag;Miete Dezember;-719,77;EUR;-950,00;EUR
    30.11.2023;30.11.2023;;Abschluss;Abschluss per 30.11.2023;230,23;EUR;0,00;EUR
    """
)

# ING Girokonto PDF statement, as extracted text.
ING_TEXT = _dedent(
    """
    ING-DiBa AG
    Girokonto Nummer 5417032342
    Kontoauszug Dezember 2017
    Buchung  Buchung / Verwendungszweck                         Betrag (EUR)
    Valuta
    01.12.2017 Lastschrift ALTE LEIPZIGER BAUSPAR AG              -484,55
    01.12.2017 00006919254 DEZEMBER 2017VERTRAG: 0 248651201
    Mandat: 000000019455825
    Referenz: 0000069192540
    04.12.2017 Gutschrift Arbeitgeber GmbH                      2.500,00
    04.12.2017 Gehalt November
    15.12.2017 Lastschrift DKB AG Kreditkarte                     -500,00
    15.12.2017 Kreditkarte 4930 Abrechnung
    Neuer Saldo                                                 1.515,45
    """
)

# DKB Miles & More card export. Rows: a pending Amazon order, a booked
# grocery purchase, a declined payment, a foreign-currency hotel bill,
# a truncated row, and the settlement from the checking account.
DKB_CSV = _dedent(
    """
    "Miles & More Gold Credit Card;5310XXXXXXXX1234"

    "Getätigt am";"Ausgeführt am";"Betrag";"Währung";"Verwendungszweck";"Zahlungsart";"Status";"Betrag in Fremdwährung";"Fremdwährung";"Wechselkurs"
    "21.12.2023";"";"-9,99";"EUR";"AMZN Mktp DE";"e-commerce";"Vorgemerkt";"";"";""
    "20.12.2023";"21.12.2023";"-42,05";"EUR";"EDEKA MARTENS, Ammersbek";"Kartenzahlung";"Gebucht";"";"";""
    "18.12.2023";"19.12.2023";"-25,00";"EUR";"Restaurant X, Paris";"Kartenzahlung";"Abgelehnt";"";"";""
    "15.12.2023";"18.12.2023";"-110,27";"EUR";"HOTEL LONDON, London";"Kartenzahlung";"Gebucht";"-95,00";"GBP";"1,1607"
    "22.12.2023";"kaputt"
    "28.12.2023";"29.12.2023";"500,00";"EUR";"Lastschrift";"Lastschrift";"Gebucht";"";"";""
    """
)

# DKB card PDF statement, as extracted text.
DKB_TEXT = _dedent(
    """
    Ihre Abrechnung vom 02.01.24 bis 31.01.24
    Miles & More Gold Credit Card 5310 XXXX XXXX 1234
    Saldo letzte Abrechnung                             1.286,60 -
    29.12.23 02.01.24  EDEKA MARTENS, Ammersbek            42,05 -
                       Prämienmeilen                          +21
    03.01.24 04.01.24  HOTEL LONDON, London               110,27 -
                       Kurs 1,1607
             15.01.24  Lastschrift                        1.286,60 +
             31.01.24  monatlicher Kartenpreis              2,50 -
    Neuer Saldo                                            66,01 -
    """
)


__all__ = ["DKB_CSV", "DKB_TEXT", "ING_CSV", "ING_TEXT"]
