from typing import Optional

from registry.models import User


def format_user(u: Optional[User]):
    if u is None:
        return None
    return {
        'id': u.id,
        'address': u.address,
        'name': u.name,
        'email': u.email,
        'role': u.role,
        'createdAt': u.created_at.isoformat(),
        'updatedAt': u.updated_at.isoformat(),
    }


def create_user(*, address: str, name: str = '', email: str = '', role: str = 'DONOR') -> User:
    return User.objects.create(address=address, name=name, email=email, role=role)


def get_user(address: str) -> Optional[User]:
    return User.objects.filter(address=address).first()


def list_users():
    return list(User.objects.order_by('id'))


def update_user(address: str, **fields) -> User:
    """Update the user owning ``address``; raises ``User.DoesNotExist``."""
    user = User.objects.get(address=address)
    for field in ('name', 'email', 'role'):
        if field in fields and fields[field] is not None:
            setattr(user, field, fields[field])
    user.save()
    return user
