"""Terminal styling and notifications for the setup wizard."""

from questionary import Style

from core.connection import AttemptOutcome, ConnectionIntent

STYLE = Style(
    [
        ("qmark", "fg:cyan bold"),
        ("question", "bold"),
        ("answer", "fg:green bold"),
        ("pointer", "fg:cyan bold"),
        ("highlighted", "fg:cyan bold"),
        ("selected", "fg:green"),
    ]
)

_SUCCESS_TITLES = {
    ConnectionIntent.CREATE: ("Repository created", "Your new repository is ready to use."),
    ConnectionIntent.CONNECT: ("Connected", "Successfully connected to the repository."),
}
_FAILURE_TITLES = {
    ConnectionIntent.CREATE: "Failed to create repository",
    ConnectionIntent.CONNECT: "Failed to connect to repository",
}


def hint(text: str) -> None:
    print(text)


def notify(intent: ConnectionIntent, outcome: AttemptOutcome) -> None:
    """One notification per terminal outcome."""
    if outcome.ok:
        title, body = _SUCCESS_TITLES[intent]
        print(f"\n✓ {title}")
        print(f"  {body}")
        status = outcome.status
        if status is not None:
            details = [
                ("Storage", status.storage),
                ("Hash", status.hash),
                ("Encryption", status.encryption),
                ("Description", status.description),
            ]
            for label, value in details:
                if value:
                    print(f"  {label}: {value}")
        return
    print(f"\n✗ {_FAILURE_TITLES[intent]}")
    print(f"  {outcome.message}")
