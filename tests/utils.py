from accounts.models import Business, User
from inventory.models import Product

DIMENSIONS = 768


def create_store(email, store_name, password='testpass123'):
    """Create an owner and their store; returns (user, business)."""
    user = User.objects.create_user(email=email, password=password, name=store_name + ' Owner')
    business = Business.objects.create(owner=user, name=store_name)
    return user, business


def axis_vector(*weights):
    """
    A DIMENSIONS-wide vector whose leading components are ``weights``.

    axis_vector(1.0) and axis_vector(0.0, 1.0) are orthogonal;
    axis_vector(1.0, 0.1) is close to axis_vector(1.0).
    """
    return list(weights) + [0.0] * (DIMENSIONS - len(weights))


def create_product(business, name, embedding=None, price=5000, stock=10, description=None):
    """Create a product and set its embedding without going through the model."""
    product = Product.objects.create(
        business=business,
        name=name,
        price=price,
        stock=stock,
        description=description or f"{name} description",
    )
    if embedding is not None:
        Product.objects.filter(pk=product.pk).update(embedding=embedding)
        product.refresh_from_db()
    return product
