"""
Default collaboration contract.

Renders the bilingual (French / English) contract proposed to both parties
until one of them edits it. The text depends only on its arguments, so
rendering it twice for the same collaboration yields the same contract.
"""

from datetime import datetime

from collab_engine.models.collaboration import Compensation


def format_amount(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.2f}"


def compensation_clauses(compensation: Compensation) -> tuple[str, str]:
    """Returns the French and English wording of the compensation article."""

    if compensation.type == "fixed_amount":
        amount = format_amount(compensation.amount or 0)
        return (
            f"L'Agent Apporteur percevra une compensation forfaitaire de {amount}€.",
            f"The Referring Agent will receive a fixed compensation of €{amount}.",
        )
    if compensation.type == "gift_vouchers":
        amount = format_amount(compensation.amount or 0)
        return (
            f"L'Agent Apporteur percevra {amount} chèques cadeaux.",
            f"The Referring Agent will receive {amount} gift vouchers.",
        )

    partner_share = format_amount(compensation.percentage)
    owner_share = format_amount(100 - compensation.percentage)
    return (
        "La commission sera répartie comme suit :\n"
        f"- Agent Propriétaire : {owner_share}%\n"
        f"- Agent Apporteur : {partner_share}%",
        "The commission will be split as follows:\n"
        f"- Listing Agent: {owner_share}%\n"
        f"- Referring Agent: {partner_share}%",
    )


def render_default_contract(
    owner_name: str,
    partner_name: str,
    compensation: Compensation,
    dated: datetime,
) -> str:
    fr_split, en_split = compensation_clauses(compensation)
    date = dated.strftime("%d/%m/%Y")

    return f"""CONTRAT DE COLLABORATION IMMOBILIÈRE
REAL ESTATE COLLABORATION AGREEMENT

ENTRE LES SOUSSIGNÉS / BETWEEN THE UNDERSIGNED:

D'une part / On the one hand,
{owner_name}
Agent immobilier propriétaire du bien / Listing agent
Ci-après dénommé « L'AGENT PROPRIÉTAIRE » / Hereinafter "THE LISTING AGENT"

Et d'autre part / And on the other hand,
{partner_name}
Agent immobilier apporteur / Referring agent
Ci-après dénommé « L'AGENT APPORTEUR » / Hereinafter "THE REFERRING AGENT"

ARTICLE 1 - OBJET DU CONTRAT / PURPOSE
Le présent contrat a pour objet de définir les modalités de collaboration entre les deux agents immobiliers pour la vente du bien immobilier référencé dans cette collaboration.
This agreement defines the terms of the collaboration between the two real estate agents for the sale of the property referenced in this collaboration.

ARTICLE 2 - OBLIGATIONS DE L'AGENT PROPRIÉTAIRE / OBLIGATIONS OF THE LISTING AGENT
L'Agent Propriétaire s'engage à :
- Fournir toutes les informations nécessaires concernant le bien
- Assurer la coordination des visites
- Gérer les aspects administratifs et juridiques de la vente
The Listing Agent undertakes to:
- Provide all necessary information about the property
- Coordinate the visits
- Handle the administrative and legal aspects of the sale

ARTICLE 3 - OBLIGATIONS DE L'AGENT APPORTEUR / OBLIGATIONS OF THE REFERRING AGENT
L'Agent Apporteur s'engage à :
- Prospecter activement pour trouver des acquéreurs potentiels
- Organiser les visites en coordination avec l'Agent Propriétaire
- Assurer le suivi des clients prospects
The Referring Agent undertakes to:
- Actively prospect for potential buyers
- Organise visits in coordination with the Listing Agent
- Follow up with prospective clients

ARTICLE 4 - RÉMUNÉRATION / COMPENSATION
{fr_split}
{en_split}

ARTICLE 5 - DURÉE / TERM
Le présent contrat prend effet à compter de sa signature par les deux parties et reste valable jusqu'à la finalisation de la vente ou résiliation par l'une des parties.
This agreement takes effect once signed by both parties and remains valid until the sale is finalised or either party terminates it.

ARTICLE 6 - RÉSILIATION / TERMINATION
Chaque partie peut résilier le présent contrat moyennant un préavis de 7 jours par notification écrite.
Either party may terminate this agreement with 7 days' written notice.

Fait en deux exemplaires originaux. / Made in two original copies.

Date : {date}"""
