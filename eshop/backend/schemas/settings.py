"""
Settings Blob Schemas.

Typed views over the JSON documents kept in the config store. Every field
has a default, so validating a stored document fills in whatever it lacks:
stored keys win, missing keys fall back.
"""

from pydantic import Field, field_validator

from eshop.backend.schemas.base import CamelModel

# =============================================================================
# Site visual / links / menu
# =============================================================================


class Highlight(CamelModel):
    value: str = ""
    title: str = ""
    description: str = ""


def _default_highlights() -> list[Highlight]:
    return [
        Highlight(
            value="48h",
            title="Servis do 48 h",
            description="Lokalny tim inzinierov vyrazi do dvoch pracovnych dni.",
        ),
        Highlight(
            value="ZTNA",
            title="Zero-trust standard",
            description="Kazde zariadenie je overene politikami zero-trust.",
        ),
        Highlight(
            value="-32%",
            title="Ekologicka logistika",
            description="Partneri s CO2 neutralitou a transparentnym trackingom.",
        ),
    ]


class VisualSettings(CamelModel):
    """Homepage hero section."""

    background_image: str = ""
    carousel_images: list[str] = Field(default_factory=list)
    title: str = "Technologie a servis, ktore nakopnu vase podnikanie este tento tyzden."
    description: str = (
        "Dodavky UPS, klimatizacii a IT infrastruktury so zasahom do 48 hodin "
        "a lokalnou podporou."
    )
    primary_cta_label: str = "Objavit riesenia"
    primary_cta_link: str = "/produkty"
    secondary_cta_label: str = "Kontaktovat experta"
    secondary_cta_link: str = "/kontakt"
    highlights: list[Highlight] = Field(default_factory=_default_highlights)


class FooterLink(CamelModel):
    label: str
    href: str


def _default_footer_links() -> list[FooterLink]:
    return [
        FooterLink(label="Servis UPS", href="https://www.2pnet.cz/servis-ups"),
        FooterLink(label="Klimatizacie", href="https://www.2pnet.cz/klimatizace"),
        FooterLink(label="IT infrastruktura", href="https://www.2pnet.cz/servis-it"),
    ]


class LinkSettings(CamelModel):
    logo_primary_link: str = "https://www.2pnet.cz"
    logo_admin_link: str = "/admin"
    footer_links: list[FooterLink] = Field(default_factory=_default_footer_links)


class MenuItem(CamelModel):
    label: str
    href: str
    icon: str | None = None
    children: list["MenuItem"] | None = None


def _default_main_menu() -> list[MenuItem]:
    return [
        MenuItem(label="Domov", href="/"),
        MenuItem(label="Produkty", href="/produkty"),
        MenuItem(label="O nás", href="/o-nas"),
        MenuItem(label="Kontakt", href="/kontakt"),
    ]


def _default_footer_menu() -> list[MenuItem]:
    return [
        MenuItem(label="Obchodné podmienky", href="/obchodne-podmienky"),
        MenuItem(label="Ochrana osobných údajov", href="/ochrana-udajov"),
        MenuItem(label="Cookies", href="/cookies"),
    ]


class MenuSettings(CamelModel):
    main_menu: list[MenuItem] = Field(default_factory=_default_main_menu)
    footer_menu: list[MenuItem] = Field(default_factory=_default_footer_menu)
    mobile_menu_enabled: bool = True


class SiteSettings(CamelModel):
    """Older combined document: hero plus links."""

    hero: VisualSettings = Field(default_factory=VisualSettings)
    links: LinkSettings = Field(default_factory=LinkSettings)


# =============================================================================
# Admin menu
# =============================================================================


class AdminMenuItem(CamelModel):
    id: str
    label: str
    description: str | None = None
    children: list["AdminMenuItem"] | None = None


def _section(id: str, label: str, description: str, children: list[tuple[str, str]]) -> AdminMenuItem:
    return AdminMenuItem(
        id=id,
        label=label,
        description=description,
        children=[AdminMenuItem(id=child_id, label=child_label) for child_id, child_label in children],
    )


def default_admin_menu() -> list[AdminMenuItem]:
    return [
        _section(
            "section-administration",
            "Administrácia",
            "Globálne nastavenia a vizuál",
            [
                ("admin-visual", "Vizuál & pozadie"),
                ("admin-links", "Linky & odkazy"),
                ("admin-navigation", "Menu & podmenu"),
            ],
        ),
        _section(
            "section-users",
            "Správa používateľov",
            "Zákazníci a administrátori",
            [
                ("admin-customers", "Zákazníci"),
                ("admin-admins", "Administrátori"),
                ("admin-access", "Prístupy & práva"),
            ],
        ),
        _section(
            "section-documents",
            "Doklady",
            "Objednávky, faktúry a Flexi",
            [
                ("admin-orders", "Objednávky"),
                ("admin-invoices", "Faktúry"),
                ("admin-flexi", "ABRA Flexi"),
            ],
        ),
        _section(
            "section-products",
            "Produkty",
            "Katalóg, kategórie a akcie",
            [
                ("admin-product-list", "Katalóg produktov"),
                ("admin-categories", "Kategórie & podkategórie"),
                ("admin-promotions", "Akcie & kampane"),
            ],
        ),
        _section(
            "section-logging",
            "Logovanie",
            "Audit a sledovanie zmien",
            [
                ("admin-audit", "Audit log"),
                ("admin-system", "Systémové udalosti"),
            ],
        ),
    ]


# =============================================================================
# Invoice template
# =============================================================================


class InvoiceSupplier(CamelModel):
    name: str = "2Pnet s.r.o."
    address: str = "Štefánikova 802, 293 01 Mladá Boleslav"
    ico: str = "03599861"
    dic: str = "CZ03599861"
    vat_id: str | None = "CZ03599861"
    bank_account: str = "2101234567/2010"
    iban: str = "CZ29 2010 0000 0021 0123 4567"
    swift: str = "FIOBCZPPXXX"


class InvoiceDefaults(CamelModel):
    currency: str = "CZK"
    vat_rate: float = Field(default=0.21, ge=0, le=1)
    due_days: int = Field(default=14, ge=0)
    supply_days_offset: int = 0


class InvoicePhrases(CamelModel):
    footer_note: str = "Ďakujeme za spoluprácu. V prípade dotazov kontaktujte billing@2pnet.cz."
    legal_note: str = "Dodávateľ je platcom DPH. Faktúra bola vystavená v súlade so zákonom o DPH."
    payment_instructions: str = (
        "Uhrazujte prosím bankovým prevodom na účet uvedený vyššie. "
        "Variabilný symbol = číslo faktúry."
    )


class InvoiceTemplate(CamelModel):
    supplier: InvoiceSupplier = Field(default_factory=InvoiceSupplier)
    defaults: InvoiceDefaults = Field(default_factory=InvoiceDefaults)
    phrases: InvoicePhrases = Field(default_factory=InvoicePhrases)


# =============================================================================
# Chat
# =============================================================================


class ChatScheduleEntry(CamelModel):
    day: int = Field(ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    start: str = Field(pattern=r"^\d{2}:\d{2}$")
    end: str = Field(pattern=r"^\d{2}:\d{2}$")


def _default_online_hours() -> list[ChatScheduleEntry]:
    hours = [ChatScheduleEntry(day=day, start="08:00", end="16:00") for day in range(1, 5)]
    hours.append(ChatScheduleEntry(day=5, start="08:00", end="15:00"))
    return hours


class TawkToSettings(CamelModel):
    enabled: bool = False
    property_id: str = ""
    widget_id: str = ""


class ChatSettings(CamelModel):
    admin_email: str = ""
    timezone: str = "Europe/Bratislava"
    online_hours: list[ChatScheduleEntry] = Field(default_factory=_default_online_hours)
    always_online: bool = False
    email_subject_prefix: str = "[Eshop Chat]"
    auto_reply_enabled: bool = False
    auto_reply_message: str = "Ďakujeme za vašu správu. Ozveme sa vám čo najskôr."
    tawk_to: TawkToSettings = Field(default_factory=TawkToSettings)
    channel_type: str = "telegram"
    telegram_bot_token: str = ""
    telegram_group_id: str = ""
    telegram_chat_id: str = ""
    messenger_page_token: str = ""
    messenger_recipient_id: str = ""

    @field_validator("channel_type")
    @classmethod
    def _known_channel(cls, value: str) -> str:
        return "messenger" if value == "messenger" else "telegram"


# =============================================================================
# FlexiBee
# =============================================================================


class FlexibeeSettings(CamelModel):
    url: str = ""
    company: str = ""
    username: str = ""
    password: str = ""

    @field_validator("url", "company", "username", "password", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value
